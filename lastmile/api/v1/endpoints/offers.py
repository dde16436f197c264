"""Offer endpoints: CRUD, nearby search and lifecycle transitions."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from lastmile.core.config import settings
from lastmile.core.security import get_current_user, require_role
from lastmile.db.session import get_db
from lastmile.models.user import User
from lastmile.schemas.common import ok
from lastmile.schemas.offer import OfferCreate, OfferUpdate, PackageType, Urgency, serialize_offer
from lastmile.services import offer_service
from lastmile.services.cache import Cache, get_cache
from lastmile.services.notification_service import NotificationOutbox, get_outbox

router: APIRouter = APIRouter()

async def transition_body(request: Request) -> bytes:
    """Raw request body, decoded only after the transition guard has run."""
    return await request.body()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_offer(
    payload: OfferCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role("business")),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    offer = offer_service.create_offer(db, current_user, payload, outbox=outbox, cache=cache)
    return ok(serialize_offer(offer).model_dump(mode="json"), "Offer created successfully")


@router.get("")
def list_offers(
    status_filter: str | None = Query(default=None, alias="status"),
    urgency: Urgency | None = None,
    package_type: PackageType | None = None,
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    business_id: int | None = None,
    rider_id: int | None = None,
    sort_by: Literal["created_at", "price", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=settings.page_size_limit),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    result = offer_service.list_offers(
        db,
        current_user,
        status=status_filter,
        urgency=urgency,
        package_type=package_type,
        min_price=min_price,
        max_price=max_price,
        business_id=business_id,
        rider_id=rider_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ok(result.model_dump(mode="json"))


# Declared before /{offer_id} so "nearby" is not parsed as an id.
@router.get("/nearby")
def nearby_offers(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    radius: float = Query(default=settings.nearby_default_radius_km, gt=0, le=settings.nearby_max_radius_km),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    urgency: Urgency | None = None,
    package_type: PackageType | None = None,
    sort_by: Literal["distance", "price", "created_at"] = "distance",
    sort_order: Literal["asc", "desc"] = "asc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.page_size_limit),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role("rider")),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    """Open offers with a pickup point within ``radius`` km of the rider."""
    result = offer_service.nearby_offers_view(
        db,
        cache,
        lat=lat,
        lng=lng,
        radius_km=radius,
        min_price=min_price,
        max_price=max_price,
        urgency=urgency,
        package_type=package_type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ok(result.model_dump(mode="json"))


@router.get("/{offer_id}")
def read_offer(
    offer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    view = offer_service.get_offer_view(db, offer_id, cache)
    offer_service.ensure_can_view_offer(current_user, view)
    return ok(view.model_dump(mode="json"))


@router.put("/{offer_id}")
def update_offer(
    offer_id: int,
    payload: OfferUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    offer = offer_service.update_offer(db, current_user, offer_id, payload, cache=cache)
    return ok(serialize_offer(offer).model_dump(mode="json"), "Offer updated successfully")


def _transition(
    db: Session,
    offer_id: int,
    new_status: str,
    actor: User,
    payload: bytes,
    outbox: NotificationOutbox,
    cache: Cache,
    message: str,
) -> dict[str, Any]:
    offer = offer_service.transition_offer(db, offer_id, new_status, actor, payload, outbox=outbox, cache=cache)
    return ok(serialize_offer(offer).model_dump(mode="json"), message)


@router.post("/{offer_id}/accept")
def accept_offer(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "accepted", current_user, payload, outbox, cache, "Offer accepted successfully")


@router.post("/{offer_id}/pickup")
def confirm_pickup(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "picked_up", current_user, payload, outbox, cache, "Pickup confirmed")


@router.post("/{offer_id}/in-transit")
def mark_in_transit(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "in_transit", current_user, payload, outbox, cache, "Offer is now in transit")


@router.post("/{offer_id}/delivered")
def confirm_delivery(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "delivered", current_user, payload, outbox, cache, "Delivery confirmed")


@router.post("/{offer_id}/complete")
def complete_offer(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "completed", current_user, payload, outbox, cache, "Offer completed")


@router.post("/{offer_id}/cancel")
def cancel_offer(
    offer_id: int,
    payload: bytes = Depends(transition_body),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    outbox: NotificationOutbox = Depends(get_outbox),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    return _transition(db, offer_id, "cancelled", current_user, payload, outbox, cache, "Offer cancelled")
