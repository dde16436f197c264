"""Notification outbox and inbox queries.

Transitions never write notifications inline. They enqueue messages on a
request-scoped :class:`NotificationOutbox`, which is flushed after the
response in its own session; each message is isolated so one failure cannot
affect the others or the committed transition.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from lastmile.core.errors import NotFoundError
from lastmile.db import session as db_session
from lastmile.models.notification import NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES, Notification
from lastmile.models.offer import Offer
from lastmile.models.user import User
from lastmile.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundNotification:
    user_id: int
    type: str
    title: str
    message: str
    offer_id: int | None = None
    priority: str = "medium"

    def __post_init__(self) -> None:
        if self.type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {self.type}")
        if self.priority not in NOTIFICATION_PRIORITIES:
            raise ValueError(f"Unknown notification priority: {self.priority}")


class NotificationOutbox:
    """Collects notifications during a request and delivers them afterwards."""

    def __init__(self) -> None:
        self.pending: list[OutboundNotification] = []

    def enqueue(self, notification: OutboundNotification) -> None:
        self.pending.append(notification)

    def extend(self, notifications: list[OutboundNotification]) -> None:
        self.pending.extend(notifications)

    def dispatch(self) -> int:
        """Persist queued notifications; return how many were stored."""
        if not self.pending:
            return 0
        batch, self.pending = self.pending, []
        delivered = 0
        with db_session.SessionLocal() as db:
            for item in batch:
                try:
                    db.add(
                        Notification(
                            user_id=item.user_id,
                            offer_id=item.offer_id,
                            type=item.type,
                            title=item.title,
                            message=item.message,
                            priority=item.priority,
                        )
                    )
                    db.commit()
                    delivered += 1
                except Exception:
                    db.rollback()
                    logger.exception(
                        "[NOTIFY] Failed to deliver %s to user_id=%s offer_id=%s",
                        item.type,
                        item.user_id,
                        item.offer_id,
                    )
        return delivered


def get_outbox(background_tasks: BackgroundTasks) -> NotificationOutbox:
    """Request-scoped outbox flushed once the response has been sent."""
    outbox = NotificationOutbox()
    background_tasks.add_task(outbox.dispatch)
    return outbox


STATUS_TITLES: dict[str, str] = {
    "accepted": "Offer accepted",
    "picked_up": "Package picked up",
    "in_transit": "Package in transit",
    "delivered": "Package delivered",
    "completed": "Delivery completed",
    "cancelled": "Offer cancelled",
}


def _describe(offer: Offer) -> str:
    return str((offer.package or {}).get("description") or f"offer #{offer.id}")


def offer_created_notifications(offer: Offer) -> list[OutboundNotification]:
    return [
        OutboundNotification(
            user_id=offer.business_id,
            offer_id=offer.id,
            type="offer_created",
            title="Offer posted",
            message=f"Your delivery offer for {_describe(offer)} is now visible to riders.",
            priority="low",
        )
    ]


def transition_notifications(offer: Offer, new_status: str) -> list[OutboundNotification]:
    """Fan-out for a committed transition."""
    description = _describe(offer)
    notification_type = f"offer_{new_status}"
    title = STATUS_TITLES[new_status]
    messages: list[OutboundNotification] = [
        OutboundNotification(
            user_id=offer.business_id,
            offer_id=offer.id,
            type=notification_type,
            title=title,
            message=f"Your offer for {description} is now {new_status.replace('_', ' ')}.",
            priority="high" if new_status in {"accepted", "delivered"} else "medium",
        )
    ]
    if offer.rider_id is None:
        return messages
    if new_status == "accepted":
        pickup = (offer.pickup or {}).get("address", "")
        delivery = (offer.delivery or {}).get("address", "")
        messages.append(
            OutboundNotification(
                user_id=offer.rider_id,
                offer_id=offer.id,
                type=notification_type,
                title="New delivery assigned",
                message=f"Pick up {description} at {pickup} and deliver it to {delivery}.",
                priority="high",
            )
        )
    elif new_status in {"completed", "cancelled"}:
        messages.append(
            OutboundNotification(
                user_id=offer.rider_id,
                offer_id=offer.id,
                type=notification_type,
                title=title,
                message=f"The delivery of {description} is {new_status}.",
            )
        )
    return messages


def list_notifications(
    db: Session,
    user_id: int,
    *,
    unread_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    filters = [Notification.user_id == user_id]
    if unread_only:
        filters.append(Notification.is_read.is_(False))
    total = db.scalar(select(func.count(Notification.id)).where(*filters)) or 0
    rows = db.scalars(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(rows), int(total)


def get_user_notification(db: Session, user_id: int, notification_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    # Foreign notifications are reported as missing to avoid leaking ids.
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification")
    return notification


def mark_read(db: Session, user_id: int, notification_id: int) -> Notification:
    notification = get_user_notification(db, user_id, notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: int) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
    )
    db.commit()
    return int(result.rowcount or 0)


def delete_notification(db: Session, user_id: int, notification_id: int) -> None:
    notification = get_user_notification(db, user_id, notification_id)
    db.delete(notification)
    db.commit()


def notification_stats(db: Session, user_id: int) -> dict[str, Any]:
    rows = db.execute(
        select(Notification.type, Notification.is_read).where(Notification.user_id == user_id)
    ).all()
    by_type: Counter[str] = Counter(row[0] for row in rows)
    unread = sum(1 for row in rows if not row[1])
    return {"total": len(rows), "unread": unread, "by_type": dict(by_type)}


def announcement_notifications(
    db: Session,
    *,
    title: str,
    message: str,
    role: str | None = None,
    priority: str = "medium",
) -> list[OutboundNotification]:
    """One ``system_announcement`` per active non-admin account, optionally narrowed to ``role``."""
    query = select(User.id).where(User.is_active.is_(True), User.role != "admin")
    if role:
        query = query.where(User.role == role)
    return [
        OutboundNotification(
            user_id=user_id,
            type="system_announcement",
            title=title,
            message=message,
            priority=priority,
        )
        for user_id in db.scalars(query.order_by(User.id)).all()
    ]
