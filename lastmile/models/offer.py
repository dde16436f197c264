"""Delivery offer and status history models."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, JSON, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lastmile.db.base import Base


class Offer(Base):
    """Delivery request posted by a business.

    ``package``, ``pickup``, ``delivery``, ``pricing`` and ``business_rating``
    are stored as JSON sub-documents. ``pricing_total``, ``pickup_lat``,
    ``pickup_lng``, ``urgency`` and ``package_type`` mirror them as plain
    columns so filters and the nearby bounding box run in the database.
    """

    __tablename__ = "offers"

    id: Mapped[int] = mapped_column(primary_key=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rider_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    urgency: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")
    package_type: Mapped[str] = mapped_column(String(32), nullable=False)
    package: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    pickup: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    delivery: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    pricing: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    pricing_total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    pickup_lat: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_lng: Mapped[float] = mapped_column(Float, nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    estimated_delivery_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    business_rating: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    in_transit_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    status_history: Mapped[list["StatusHistoryEntry"]] = relationship(
        back_populates="offer",
        order_by="StatusHistoryEntry.sequence",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_offers_status_created_at", "status", "created_at"),
        Index("ix_offers_pickup_point", "pickup_lat", "pickup_lng"),
        Index("ix_offers_rider_status", "rider_id", "status"),
    )


class StatusHistoryEntry(Base):
    """One committed status transition; rows are only ever appended."""

    __tablename__ = "offer_status_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    offer_id: Mapped[int] = mapped_column(ForeignKey("offers.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    offer: Mapped[Offer] = relationship(back_populates="status_history")

    __table_args__ = (UniqueConstraint("offer_id", "sequence", name="uq_status_history_offer_sequence"),)
