"""User account and role-specific profile models.

Each account carries an explicit ``role`` tag and exactly one matching
profile row: businesses own a :class:`BusinessProfile`, riders a
:class:`RiderProfile`, admins have none.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lastmile.db.base import Base

USER_ROLES = ("business", "rider", "admin")
VEHICLE_TYPES = ("bike", "scooter", "car", "van")


def normalize_user_role(role: str | None) -> str:
    """Return canonical lowercase role or raise ``ValueError``."""
    canonical = str(role or "").strip().lower()
    if canonical not in USER_ROLES:
        raise ValueError(f"Unknown role: {role!r}")
    return canonical


class User(Base):
    """Account used for email/password login."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(Enum(*USER_ROLES, name="user_role"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspension_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    business_profile: Mapped["BusinessProfile | None"] = relationship(back_populates="user", uselist=False)
    rider_profile: Mapped["RiderProfile | None"] = relationship(back_populates="user", uselist=False)


class BusinessProfile(Base):
    """Business-only fields and completion counters."""

    __tablename__ = "business_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    business_address: Mapped[str] = mapped_column(Text, nullable=False)
    total_offers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_offers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped[User] = relationship(back_populates="business_profile")


class RiderProfile(Base):
    """Rider-only fields: availability, location, statistics and earnings."""

    __tablename__ = "rider_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    vehicle_type: Mapped[str] = mapped_column(Enum(*VEHICLE_TYPES, name="vehicle_type"), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    current_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    active_deliveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_deliveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pickups: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earnings_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    earnings_this_month: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    last_earning_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rating_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped[User] = relationship(back_populates="rider_profile")
