"""Notification inbox endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lastmile.core.config import settings
from lastmile.core.security import get_current_user
from lastmile.db.session import get_db
from lastmile.models.notification import Notification
from lastmile.models.user import User
from lastmile.schemas.common import build_pagination, ok
from lastmile.services import notification_service
from lastmile.utils.time import as_utc

router: APIRouter = APIRouter()


def _serialize(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "offer_id": notification.offer_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority,
        "is_read": notification.is_read,
        "read_at": as_utc(notification.read_at),
        "created_at": as_utc(notification.created_at),
    }


@router.get("")
def list_notifications(
    unread_only: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.page_size_limit),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rows, total = notification_service.list_notifications(
        db, current_user.id, unread_only=unread_only, page=page, limit=limit
    )
    return ok(
        {
            "notifications": [_serialize(row) for row in rows],
            "pagination": build_pagination(page, limit, total).model_dump(),
        }
    )


@router.get("/stats")
def notification_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return ok(notification_service.notification_stats(db, current_user.id))


@router.patch("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    notification = notification_service.mark_read(db, current_user.id, notification_id)
    return ok(_serialize(notification), "Notification marked as read")


@router.post("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> dict[str, Any]:
    updated = notification_service.mark_all_read(db, current_user.id)
    return ok({"updated": updated}, f"{updated} notifications marked as read")


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    notification_service.delete_notification(db, current_user.id, notification_id)
    return ok(None, "Notification deleted")
