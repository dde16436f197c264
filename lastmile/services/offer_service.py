"""Offer lifecycle operations.

All status changes go through :func:`apply_transition`: the guard in
:mod:`lastmile.services.offer_status` decides legality, then a single
conditional ``UPDATE ... WHERE status = <observed status>`` commits the change.
A zero row count means another request moved the offer first, which is
reported as a conflict instead of being applied twice.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from lastmile.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
    format_validation_errors,
)
from lastmile.models.offer import Offer, StatusHistoryEntry
from lastmile.models.user import BusinessProfile, RiderProfile, User
from lastmile.schemas.common import build_pagination
from lastmile.schemas.offer import (
    TRANSITION_PAYLOADS,
    CompletionRequest,
    DeliveryConfirmation,
    InTransitUpdate,
    NearbyOfferList,
    NearbyOfferRead,
    OfferCreate,
    OfferList,
    OfferRead,
    OfferUpdate,
    PickupConfirmation,
    TransitionRequest,
    serialize_offer,
)
from lastmile.services.cache import Cache, invalidate_offer, nearby_key, offer_key
from lastmile.services.geo import bounding_box, haversine_km
from lastmile.services.notification_service import (
    NotificationOutbox,
    offer_created_notifications,
    transition_notifications,
)
from lastmile.services.offer_status import (
    ACTIVE_DELIVERY_STATUSES,
    ALREADY_ACCEPTED_MESSAGE,
    check_transition,
    timeline_values,
)
from lastmile.services.user_service import require_rider_profile
from lastmile.utils.time import utcnow

logger = logging.getLogger(__name__)

DEFAULT_NOTES: dict[str, str] = {
    "accepted": "Offer accepted by rider",
    "picked_up": "Package picked up",
    "in_transit": "Package is now in transit",
    "delivered": "Package delivered",
    "completed": "Offer marked as complete",
    "cancelled": "Offer cancelled",
}

TransitionPayload = dict[str, Any] | bytes | str | None

LIST_SORT_COLUMNS = {
    "created_at": Offer.created_at,
    "price": Offer.pricing_total,
    "status": Offer.status,
}


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def get_offer(db: Session, offer_id: int) -> Offer:
    offer = db.scalar(
        select(Offer).options(selectinload(Offer.status_history)).where(Offer.id == offer_id)
    )
    if offer is None:
        raise NotFoundError("Offer")
    return offer


def get_offer_view(db: Session, offer_id: int, cache: Cache | None = None) -> OfferRead:
    """Read-through cached view of a single offer."""
    if cache is not None:
        cached = cache.get_json(offer_key(offer_id))
        if cached is not None:
            return OfferRead.model_validate(cached)
    view = serialize_offer(get_offer(db, offer_id))
    if cache is not None:
        cache.set_json("offer", offer_key(offer_id), view.model_dump(mode="json"))
    return view


def ensure_can_view_offer(actor: User, offer: OfferRead) -> None:
    """Admins, the owner, the assigned rider, or any rider while the offer is open."""
    if actor.role == "admin":
        return
    if actor.id == offer.business_id:
        return
    if offer.rider_id is not None and actor.id == offer.rider_id:
        return
    if actor.role == "rider" and offer.status == "pending" and offer.rider_id is None:
        return
    raise ForbiddenError("Access denied to this offer")


def create_offer(
    db: Session,
    business: User,
    payload: OfferCreate,
    *,
    outbox: NotificationOutbox | None = None,
    cache: Cache | None = None,
) -> Offer:
    """Post a new ``pending`` offer for ``business``."""
    if business.role != "business":
        raise ForbiddenError("Only businesses can create offers")

    offer = Offer(
        business_id=business.id,
        status="pending",
        urgency=payload.urgency,
        package_type=payload.package.type,
        package=payload.package.model_dump(mode="json"),
        pickup=payload.pickup.model_dump(mode="json"),
        delivery=payload.delivery.model_dump(mode="json"),
        pricing=payload.pricing.model_dump(mode="json"),
        pricing_total=_money(payload.pricing.total),
        pickup_lat=payload.pickup.coordinates.lat,
        pickup_lng=payload.pickup.coordinates.lng,
        special_instructions=payload.special_instructions,
        estimated_duration_minutes=payload.estimated_duration_minutes,
    )
    db.add(offer)
    db.flush()
    db.execute(
        update(BusinessProfile)
        .where(BusinessProfile.user_id == business.id)
        .values(total_offers=BusinessProfile.total_offers + 1)
    )
    db.commit()
    logger.info("[OFFERS] Offer %s created by business_id=%s", offer.id, business.id)

    created = get_offer(db, offer.id)
    if outbox is not None:
        outbox.extend(offer_created_notifications(created))
    if cache is not None:
        invalidate_offer(cache, created.id, business_id=business.id)
    return created


def list_offers(
    db: Session,
    actor: User,
    *,
    status: str | None = None,
    urgency: str | None = None,
    package_type: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    business_id: int | None = None,
    rider_id: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> OfferList:
    """Role-scoped, filtered and paginated offer listing."""
    filters: list[Any] = []
    if actor.role == "business":
        filters.append(Offer.business_id == actor.id)
    elif actor.role == "rider":
        filters.append(
            ((Offer.status == "pending") & Offer.rider_id.is_(None)) | (Offer.rider_id == actor.id)
        )
    else:
        if business_id is not None:
            filters.append(Offer.business_id == business_id)
        if rider_id is not None:
            filters.append(Offer.rider_id == rider_id)

    if status:
        filters.append(Offer.status == status)
    if urgency:
        filters.append(Offer.urgency == urgency)
    if package_type:
        filters.append(Offer.package_type == package_type)
    if min_price is not None:
        filters.append(Offer.pricing_total >= _money(min_price))
    if max_price is not None:
        filters.append(Offer.pricing_total <= _money(max_price))

    column = LIST_SORT_COLUMNS.get(sort_by, Offer.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    total = db.scalar(select(func.count(Offer.id)).where(*filters)) or 0
    offers = db.scalars(
        select(Offer)
        .options(selectinload(Offer.status_history))
        .where(*filters)
        .order_by(ordering, Offer.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return OfferList(
        offers=[serialize_offer(offer) for offer in offers],
        pagination=build_pagination(page, limit, int(total)),
        filters={
            "status": status,
            "urgency": urgency,
            "package_type": package_type,
            "min_price": min_price,
            "max_price": max_price,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    )


def update_offer(
    db: Session,
    actor: User,
    offer_id: int,
    payload: OfferUpdate,
    *,
    cache: Cache | None = None,
) -> Offer:
    """Edit a pending offer that no rider has accepted yet."""
    offer = get_offer(db, offer_id)
    if not (actor.role == "business" and offer.business_id == actor.id):
        raise ForbiddenError("Only the owning business can edit this offer")
    if offer.status != "pending" or offer.rider_id is not None:
        raise ConflictError("Cannot update offer that is already assigned or in progress")

    values: dict[str, Any] = {}
    if payload.package is not None:
        values["package"] = payload.package.model_dump(mode="json")
        values["package_type"] = payload.package.type
    if payload.pickup is not None:
        values["pickup"] = payload.pickup.model_dump(mode="json")
        values["pickup_lat"] = payload.pickup.coordinates.lat
        values["pickup_lng"] = payload.pickup.coordinates.lng
    if payload.delivery is not None:
        values["delivery"] = payload.delivery.model_dump(mode="json")
    if payload.pricing is not None:
        values["pricing"] = payload.pricing.model_dump(mode="json")
        values["pricing_total"] = _money(payload.pricing.total)
    if payload.urgency is not None:
        values["urgency"] = payload.urgency
    if payload.special_instructions is not None:
        values["special_instructions"] = payload.special_instructions
    if payload.estimated_duration_minutes is not None:
        values["estimated_duration_minutes"] = payload.estimated_duration_minutes
    if not values:
        return offer

    values["updated_at"] = utcnow()
    result = db.execute(
        update(Offer)
        .where(Offer.id == offer.id, Offer.status == "pending", Offer.rider_id.is_(None))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConflictError("Offer was accepted while you were editing it")
    db.commit()

    if cache is not None:
        invalidate_offer(cache, offer.id, business_id=offer.business_id)
    return get_offer(db, offer.id)


def parse_transition_payload(new_status: str, payload: TransitionPayload) -> TransitionRequest:
    """Validate a transition body, given either decoded or as raw JSON bytes."""
    model = TRANSITION_PAYLOADS[new_status]
    try:
        if isinstance(payload, (bytes, str)):
            if not payload.strip():
                return model()
            return model.model_validate_json(payload)
        return model.model_validate(payload or {})
    except ValidationError as exc:
        raise ValidationFailedError(details=format_validation_errors(exc.errors())) from exc


def _ensure_rider_can_accept(db: Session, rider: User) -> None:
    profile = require_rider_profile(rider)
    if not profile.is_available:
        raise ValidationFailedError(
            "You must be available to accept offers. Please update your availability status."
        )
    busy = db.scalar(
        select(Offer.id)
        .where(Offer.rider_id == rider.id, Offer.status.in_(ACTIVE_DELIVERY_STATUSES))
        .limit(1)
    )
    if busy is not None:
        raise ConflictError("You already have an active delivery. Complete it before accepting another offer.")


def _stop_updates(stop: dict[str, Any], details: TransitionRequest, now: datetime) -> dict[str, Any]:
    merged = dict(stop)
    merged["actual_time"] = now.isoformat()
    if details.location is not None:
        merged["actual_location"] = details.location.model_dump(mode="json")
    if details.notes:
        merged["notes"] = details.notes
    for field in ("confirmation_code", "photo_url", "recipient_name", "signature_url"):
        value = getattr(details, field, None)
        if value:
            merged[field] = value
    return merged


def _document_updates(
    offer: Offer,
    new_status: str,
    details: TransitionRequest,
    actor: User,
    now: datetime,
) -> dict[str, Any]:
    """Sub-document changes written together with the status."""
    if isinstance(details, PickupConfirmation):
        return {"pickup": _stop_updates(offer.pickup, details, now)}
    if isinstance(details, DeliveryConfirmation):
        return {"delivery": _stop_updates(offer.delivery, details, now)}
    if isinstance(details, InTransitUpdate) and details.estimated_delivery_time is not None:
        return {"estimated_delivery_at": details.estimated_delivery_time}
    if isinstance(details, CompletionRequest) and details.rider_rating is not None:
        return {
            "business_rating": {
                "rating": details.rider_rating,
                "comment": details.rider_rating_comment,
                "rated_by": actor.id,
                "rated_at": now.isoformat(),
            }
        }
    return {}


def _history_notes(new_status: str, details: TransitionRequest) -> str:
    if details.notes:
        return details.notes
    if isinstance(details, DeliveryConfirmation):
        return f"Package delivered to {details.recipient_name}"
    reason = getattr(details, "reason", None)
    if reason:
        return f"Offer cancelled: {reason}"
    return DEFAULT_NOTES[new_status]


def _append_history(
    db: Session,
    offer_id: int,
    new_status: str,
    actor_id: int,
    details: TransitionRequest,
    now: datetime,
) -> None:
    last_sequence = db.scalar(
        select(func.coalesce(func.max(StatusHistoryEntry.sequence), 0)).where(StatusHistoryEntry.offer_id == offer_id)
    )
    db.add(
        StatusHistoryEntry(
            offer_id=offer_id,
            sequence=int(last_sequence or 0) + 1,
            status=new_status,
            timestamp=now,
            updated_by=actor_id,
            notes=_history_notes(new_status, details),
            location_lat=details.location.lat if details.location else None,
            location_lng=details.location.lng if details.location else None,
        )
    )


def _apply_counters(
    db: Session,
    offer: Offer,
    new_status: str,
    rider_id: int | None,
    details: TransitionRequest,
    now: datetime,
) -> None:
    """Atomic counter increments for the transition's side effects."""
    if new_status == "accepted" and rider_id is not None:
        db.execute(
            update(RiderProfile)
            .where(RiderProfile.user_id == rider_id)
            .values(active_deliveries=RiderProfile.active_deliveries + 1)
        )
    elif new_status == "picked_up" and rider_id is not None:
        db.execute(
            update(RiderProfile)
            .where(RiderProfile.user_id == rider_id)
            .values(total_pickups=RiderProfile.total_pickups + 1)
        )
    elif new_status == "delivered" and rider_id is not None:
        amount = Decimal(offer.pricing_total)
        db.execute(
            update(RiderProfile)
            .where(RiderProfile.user_id == rider_id)
            .values(
                total_deliveries=RiderProfile.total_deliveries + 1,
                active_deliveries=RiderProfile.active_deliveries - 1,
                earnings_total=RiderProfile.earnings_total + amount,
                earnings_this_month=RiderProfile.earnings_this_month + amount,
                last_earning_at=now,
            )
        )
    elif new_status == "completed":
        db.execute(
            update(BusinessProfile)
            .where(BusinessProfile.user_id == offer.business_id)
            .values(completed_offers=BusinessProfile.completed_offers + 1)
        )
        rating = getattr(details, "rider_rating", None)
        if rating is not None and rider_id is not None:
            # Both right-hand sides see the pre-update row, so this is one running-mean step.
            db.execute(
                update(RiderProfile)
                .where(RiderProfile.user_id == rider_id)
                .values(
                    rating_average=(RiderProfile.rating_average * RiderProfile.rating_count + float(rating))
                    / (RiderProfile.rating_count + 1),
                    rating_count=RiderProfile.rating_count + 1,
                )
            )


def apply_transition(
    db: Session,
    offer: Offer,
    new_status: str,
    actor: User,
    payload: TransitionPayload = None,
    *,
    outbox: NotificationOutbox | None = None,
    cache: Cache | None = None,
) -> Offer:
    """Move ``offer`` to ``new_status`` on behalf of ``actor``.

    ``offer`` is the state the caller observed; the write only succeeds if the
    stored status still matches it.

    Raises:
        InvalidTransitionError, ForbiddenError, ConflictError,
        ValidationFailedError.
    """
    check_transition(offer, new_status, actor)
    details = parse_transition_payload(new_status, payload)
    if new_status == "accepted":
        _ensure_rider_can_accept(db, actor)

    expected_status = offer.status
    now = utcnow()
    values: dict[str, Any] = {"status": new_status, **timeline_values(new_status, now)}
    values.update(_document_updates(offer, new_status, details, actor, now))

    statement = update(Offer).where(Offer.id == offer.id, Offer.status == expected_status)
    if new_status == "accepted":
        statement = statement.where(Offer.rider_id.is_(None))
        values["rider_id"] = actor.id
    result = db.execute(statement.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        db.rollback()
        logger.info(
            "[OFFERS] Stale transition offer_id=%s expected=%s requested=%s actor_id=%s",
            offer.id,
            expected_status,
            new_status,
            actor.id,
        )
        if new_status == "accepted":
            raise ConflictError(ALREADY_ACCEPTED_MESSAGE)
        raise ConflictError("Offer status changed concurrently; reload and retry")

    rider_id = actor.id if new_status == "accepted" else offer.rider_id
    _append_history(db, offer.id, new_status, actor.id, details, now)
    _apply_counters(db, offer, new_status, rider_id, details, now)
    db.commit()
    logger.info(
        "[OFFERS] Offer %s moved %s -> %s by user_id=%s",
        offer.id,
        expected_status,
        new_status,
        actor.id,
    )

    db.expire_all()
    updated = get_offer(db, offer.id)
    if outbox is not None:
        outbox.extend(transition_notifications(updated, new_status))
    if cache is not None:
        invalidate_offer(cache, updated.id, business_id=updated.business_id, rider_id=updated.rider_id)
    return updated


def transition_offer(
    db: Session,
    offer_id: int,
    new_status: str,
    actor: User,
    payload: TransitionPayload = None,
    *,
    outbox: NotificationOutbox | None = None,
    cache: Cache | None = None,
) -> Offer:
    """Load an offer and apply one transition to it."""
    offer = get_offer(db, offer_id)
    return apply_transition(db, offer, new_status, actor, payload, outbox=outbox, cache=cache)


def find_nearby_offers(
    db: Session,
    *,
    lat: float,
    lng: float,
    radius_km: float,
    min_price: float | None = None,
    max_price: float | None = None,
    urgency: str | None = None,
    package_type: str | None = None,
    sort_by: str = "distance",
    sort_order: str = "asc",
    page: int = 1,
    limit: int = 20,
) -> NearbyOfferList:
    """Open offers whose pickup lies within ``radius_km`` of the rider."""
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
    filters: list[Any] = [
        Offer.status == "pending",
        Offer.rider_id.is_(None),
        Offer.pickup_lat.between(min_lat, max_lat),
        Offer.pickup_lng.between(min_lng, max_lng),
    ]
    if min_price is not None:
        filters.append(Offer.pricing_total >= _money(min_price))
    if max_price is not None:
        filters.append(Offer.pricing_total <= _money(max_price))
    if urgency:
        filters.append(Offer.urgency == urgency)
    if package_type:
        filters.append(Offer.package_type == package_type)

    candidates = db.scalars(select(Offer).options(selectinload(Offer.status_history)).where(*filters)).all()

    hits: list[tuple[Offer, float]] = []
    for offer in candidates:
        distance = haversine_km(lat, lng, offer.pickup_lat, offer.pickup_lng)
        if distance <= radius_km:
            hits.append((offer, round(distance, 2)))

    if sort_by == "price":
        hits.sort(key=lambda hit: (hit[0].pricing_total, hit[0].id))
    elif sort_by == "created_at":
        hits.sort(key=lambda hit: (hit[0].created_at, hit[0].id))
    else:
        hits.sort(key=lambda hit: (hit[1], hit[0].id))
    if sort_order == "desc":
        hits.reverse()

    window = hits[(page - 1) * limit : page * limit]
    return NearbyOfferList(
        offers=[
            NearbyOfferRead(**serialize_offer(offer).model_dump(), distance_km=distance)
            for offer, distance in window
        ],
        pagination=build_pagination(page, limit, len(hits)),
        filters={
            "location": {"lat": lat, "lng": lng, "radius_km": radius_km},
            "min_price": min_price,
            "max_price": max_price,
            "urgency": urgency,
            "package_type": package_type,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    )


def nearby_offers_view(db: Session, cache: Cache | None = None, **query: Any) -> NearbyOfferList:
    """Cached wrapper around :func:`find_nearby_offers`."""
    key = None
    if cache is not None:
        key = nearby_key(query["lat"], query["lng"], query["radius_km"], query)
        cached = cache.get_json(key)
        if cached is not None:
            return NearbyOfferList.model_validate(cached)
    result = find_nearby_offers(db, **query)
    if cache is not None and key is not None:
        cache.set_json("nearby_offers", key, result.model_dump(mode="json"))
    return result
