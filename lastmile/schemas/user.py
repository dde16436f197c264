"""User views, one variant per role, discriminated by ``role``."""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from lastmile.models.user import User
from lastmile.schemas.common import GeoPoint


class BusinessProfileRead(BaseModel):
    business_name: str
    business_phone: str
    business_address: str
    total_offers: int
    completed_offers: int

    model_config = ConfigDict(from_attributes=True)


class RiderRating(BaseModel):
    average: float
    count: int


class RiderEarnings(BaseModel):
    total: float
    this_month: float
    last_earning_at: datetime | None = None


class RiderStats(BaseModel):
    active_deliveries: int
    total_deliveries: int
    total_pickups: int


class RiderProfileRead(BaseModel):
    phone: str
    vehicle_type: str
    is_available: bool
    current_location: GeoPoint | None = None
    stats: RiderStats
    earnings: RiderEarnings
    rating: RiderRating


class UserReadBase(BaseModel):
    id: int
    name: str
    email: str
    is_active: bool
    created_at: datetime
    suspended_at: datetime | None = None
    suspension_reason: str | None = None


class BusinessUserRead(UserReadBase):
    role: Literal["business"] = "business"
    profile: BusinessProfileRead


class RiderUserRead(UserReadBase):
    role: Literal["rider"] = "rider"
    profile: RiderProfileRead


class AdminUserRead(UserReadBase):
    role: Literal["admin"] = "admin"


UserRead = Annotated[
    Union[BusinessUserRead, RiderUserRead, AdminUserRead],
    Field(discriminator="role"),
]


class AvailabilityUpdate(BaseModel):
    is_available: bool


class LocationUpdate(GeoPoint):
    pass


def serialize_user(user: User) -> UserRead:
    """Build the role-specific view of a user."""
    base = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_active": user.is_active,
        "created_at": user.created_at,
        "suspended_at": user.suspended_at,
        "suspension_reason": user.suspension_reason,
    }
    if user.role == "business" and user.business_profile is not None:
        return BusinessUserRead(**base, profile=BusinessProfileRead.model_validate(user.business_profile))
    if user.role == "rider" and user.rider_profile is not None:
        rider = user.rider_profile
        location = None
        if rider.current_lat is not None and rider.current_lng is not None:
            location = GeoPoint(lat=rider.current_lat, lng=rider.current_lng)
        return RiderUserRead(
            **base,
            profile=RiderProfileRead(
                phone=rider.phone,
                vehicle_type=rider.vehicle_type,
                is_available=rider.is_available,
                current_location=location,
                stats=RiderStats(
                    active_deliveries=rider.active_deliveries,
                    total_deliveries=rider.total_deliveries,
                    total_pickups=rider.total_pickups,
                ),
                earnings=RiderEarnings(
                    total=float(rider.earnings_total),
                    this_month=float(rider.earnings_this_month),
                    last_earning_at=rider.last_earning_at,
                ),
                rating=RiderRating(average=round(rider.rating_average, 1), count=rider.rating_count),
            ),
        )
    if user.role == "admin":
        return AdminUserRead(**base)
    raise ValueError(f"User {user.id} has no {user.role} profile")
