"""User service operations."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from lastmile.core.errors import ConflictError, ForbiddenError, NotFoundError
from lastmile.models.offer import Offer
from lastmile.models.user import BusinessProfile, RiderProfile, User, normalize_user_role
from lastmile.services.offer_status import ACTIVE_DELIVERY_STATUSES, OFFER_STATUSES
from lastmile.utils.time import utcnow

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.scalar(
        select(User)
        .options(selectinload(User.business_profile), selectinload(User.rider_profile))
        .where(User.id == user_id)
    )


def create_user(
    db: Session,
    *,
    email: str,
    name: str,
    hashed_password: str,
    role: str,
    profile: dict[str, Any] | None = None,
) -> User:
    """Create an account together with the profile row of its role."""
    canonical_role = normalize_user_role(role)
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered")

    user = User(email=email.strip().lower(), name=name, password_hash=hashed_password, role=canonical_role, is_active=True)
    db.add(user)
    db.flush()

    profile = profile or {}
    if canonical_role == "business":
        db.add(
            BusinessProfile(
                user_id=user.id,
                business_name=profile["business_name"],
                business_phone=profile["business_phone"],
                business_address=profile["business_address"],
            )
        )
    elif canonical_role == "rider":
        db.add(
            RiderProfile(
                user_id=user.id,
                phone=profile["phone"],
                vehicle_type=profile["vehicle_type"],
                is_available=profile.get("is_available", True),
            )
        )

    db.commit()
    return get_user_by_id(db, user.id)


def require_user(db: Session, user_id: int) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User")
    return user


def touch_last_login(db: Session, user: User) -> None:
    user.last_login_at = utcnow()
    db.commit()


def require_rider_profile(user: User) -> RiderProfile:
    if user.role != "rider" or user.rider_profile is None:
        raise ForbiddenError("Only riders can perform this action")
    return user.rider_profile


def set_availability(db: Session, user: User, is_available: bool) -> User:
    rider = require_rider_profile(user)
    if not is_available and rider.active_deliveries > 0:
        raise ConflictError("Finish your active delivery before going offline")
    rider.is_available = is_available
    db.commit()
    return get_user_by_id(db, user.id)


def set_location(db: Session, user: User, lat: float, lng: float) -> User:
    rider = require_rider_profile(user)
    rider.current_lat = lat
    rider.current_lng = lng
    rider.location_updated_at = utcnow()
    db.commit()
    return get_user_by_id(db, user.id)


def rider_dashboard(db: Session, user: User) -> dict[str, Any]:
    rider = require_rider_profile(user)
    active_offer_id = db.scalar(
        select(Offer.id)
        .where(Offer.rider_id == user.id, Offer.status.in_(ACTIVE_DELIVERY_STATUSES))
        .order_by(Offer.accepted_at.desc())
        .limit(1)
    )
    completed = db.scalar(
        select(func.count(Offer.id)).where(Offer.rider_id == user.id, Offer.status == "completed")
    )
    return {
        "role": "rider",
        "is_available": rider.is_available,
        "active_offer_id": active_offer_id,
        "stats": {
            "active_deliveries": rider.active_deliveries,
            "total_deliveries": rider.total_deliveries,
            "total_pickups": rider.total_pickups,
            "completed_offers": int(completed or 0),
        },
        "earnings": {
            "total": float(rider.earnings_total),
            "this_month": float(rider.earnings_this_month),
            "last_earning_at": rider.last_earning_at,
        },
        "rating": {"average": round(rider.rating_average, 1), "count": rider.rating_count},
    }


def business_dashboard(db: Session, user: User) -> dict[str, Any]:
    if user.role != "business" or user.business_profile is None:
        raise ForbiddenError("Only businesses can view this dashboard")
    rows = db.execute(
        select(Offer.status, func.count(Offer.id)).where(Offer.business_id == user.id).group_by(Offer.status)
    ).all()
    counts = {status: 0 for status in OFFER_STATUSES}
    counts.update({status: int(count) for status, count in rows})
    total_spent = db.scalar(
        select(func.coalesce(func.sum(Offer.pricing_total), 0)).where(
            Offer.business_id == user.id, Offer.status == "completed"
        )
    )
    return {
        "role": "business",
        "offers_by_status": counts,
        "stats": {
            "total_offers": user.business_profile.total_offers,
            "completed_offers": user.business_profile.completed_offers,
        },
        "total_spent": float(Decimal(str(total_spent or 0))),
    }


def admin_dashboard(db: Session) -> dict[str, Any]:
    offer_rows = db.execute(select(Offer.status, func.count(Offer.id)).group_by(Offer.status)).all()
    user_rows = db.execute(select(User.role, func.count(User.id)).group_by(User.role)).all()
    counts = {status: 0 for status in OFFER_STATUSES}
    counts.update({status: int(count) for status, count in offer_rows})
    return {
        "role": "admin",
        "offers_by_status": counts,
        "users_by_role": {role: int(count) for role, count in user_rows},
    }


def dashboard_for(db: Session, user: User) -> dict[str, Any]:
    if user.role == "rider":
        return rider_dashboard(db, user)
    if user.role == "business":
        return business_dashboard(db, user)
    return admin_dashboard(db)


def list_users(
    db: Session,
    *,
    role: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], int]:
    """Newest accounts first, with the total matching count."""
    filters: list[Any] = []
    if role:
        filters.append(User.role == role)
    if is_active is not None:
        filters.append(User.is_active.is_(is_active))
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        filters.append(func.lower(User.name).like(pattern) | User.email.like(pattern))

    total = db.scalar(select(func.count(User.id)).where(*filters)) or 0
    users = db.scalars(
        select(User)
        .options(selectinload(User.business_profile), selectinload(User.rider_profile))
        .where(*filters)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(users), int(total)


def recent_offers(db: Session, user: User, limit: int = 10) -> list[Offer]:
    if user.role == "business":
        owner = Offer.business_id
    elif user.role == "rider":
        owner = Offer.rider_id
    else:
        return []
    return list(
        db.scalars(
            select(Offer)
            .options(selectinload(Offer.status_history))
            .where(owner == user.id)
            .order_by(Offer.created_at.desc(), Offer.id.desc())
            .limit(limit)
        ).all()
    )


def set_user_active(db: Session, user_id: int, is_active: bool, reason: str | None = None) -> User:
    """Suspend or reactivate an account. Suspended accounts cannot log in or use tokens."""
    user = require_user(db, user_id)
    if not is_active and user.role == "admin":
        raise ForbiddenError("Admin accounts cannot be suspended")
    if user.is_active == is_active:
        return user

    user.is_active = is_active
    user.suspended_at = None if is_active else utcnow()
    user.suspension_reason = None if is_active else reason
    db.commit()
    logger.info("[ADMIN] user_id=%s %s", user_id, "reactivated" if is_active else "suspended")
    return get_user_by_id(db, user_id)
