"""In-app notification model."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lastmile.db.base import Base

NOTIFICATION_TYPES = (
    "offer_created",
    "offer_accepted",
    "offer_picked_up",
    "offer_in_transit",
    "offer_delivered",
    "offer_completed",
    "offer_cancelled",
    "system_announcement",
)
NOTIFICATION_PRIORITIES = ("low", "medium", "high", "urgent")


class Notification(Base):
    """Message addressed to one user, optionally about one offer."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    offer_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)
