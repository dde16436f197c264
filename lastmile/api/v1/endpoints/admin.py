"""Admin-only endpoints: platform summary, account management and announcements."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from lastmile.core.config import settings
from lastmile.core.security import require_role
from lastmile.db.session import get_db
from lastmile.models.user import User
from lastmile.schemas.admin import AnnouncementCreate, SuspensionRequest
from lastmile.schemas.common import build_pagination, ok
from lastmile.schemas.offer import serialize_offer
from lastmile.schemas.user import serialize_user
from lastmile.services import user_service
from lastmile.services.cache import Cache, get_cache, user_profile_key
from lastmile.services.notification_service import NotificationOutbox, announcement_notifications, get_outbox

router: APIRouter = APIRouter()

admin_only = require_role("admin")


@router.get("/dashboard")
def read_dashboard(db: Session = Depends(get_db), _: User = Depends(admin_only)) -> dict[str, Any]:
    return ok(jsonable_encoder(user_service.admin_dashboard(db)))


@router.get("/users")
def list_users(
    role: Literal["business", "rider", "admin"] | None = None,
    is_active: bool | None = None,
    search: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.page_size_limit),
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
) -> dict[str, Any]:
    users, total = user_service.list_users(
        db, role=role, is_active=is_active, search=search, page=page, limit=limit
    )
    return ok(
        {
            "users": [serialize_user(user).model_dump(mode="json") for user in users],
            "pagination": build_pagination(page, limit, total).model_dump(),
        }
    )


@router.get("/users/{user_id}")
def read_user(user_id: int, db: Session = Depends(get_db), _: User = Depends(admin_only)) -> dict[str, Any]:
    """Account view plus its ten most recent offers."""
    user = user_service.require_user(db, user_id)
    offers = user_service.recent_offers(db, user)
    return ok(
        {
            "user": serialize_user(user).model_dump(mode="json"),
            "recent_offers": [serialize_offer(offer).model_dump(mode="json") for offer in offers],
        }
    )


@router.patch("/users/{user_id}/suspend")
def suspend_user(
    user_id: int,
    payload: SuspensionRequest | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    reason = payload.reason if payload is not None else None
    user = user_service.set_user_active(db, user_id, False, reason)
    cache.delete(user_profile_key(user.id))
    return ok(serialize_user(user).model_dump(mode="json"), "User suspended")


@router.patch("/users/{user_id}/reactivate")
def reactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    user = user_service.set_user_active(db, user_id, True)
    cache.delete(user_profile_key(user.id))
    return ok(serialize_user(user).model_dump(mode="json"), "User reactivated")


@router.post("/announcements", status_code=status.HTTP_202_ACCEPTED)
def create_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> dict[str, Any]:
    """Queue a ``system_announcement`` for every active business and/or rider."""
    notifications = announcement_notifications(
        db,
        title=payload.title,
        message=payload.message,
        role=payload.role,
        priority=payload.priority,
    )
    outbox.extend(notifications)
    return ok({"recipients": len(notifications)}, "Announcement queued")
