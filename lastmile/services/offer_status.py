"""Offer status transition table and guard.

This module is the single authority on which status changes are legal. It is
pure: it inspects an offer and an actor and either returns or raises, leaving
persistence to :mod:`lastmile.services.offer_service`.
"""

from __future__ import annotations

from datetime import datetime

from lastmile.core.errors import ConflictError, ForbiddenError, InvalidTransitionError
from lastmile.models.offer import Offer
from lastmile.models.user import User

OFFER_STATUSES: list[str] = [
    "pending",
    "accepted",
    "picked_up",
    "in_transit",
    "delivered",
    "completed",
    "cancelled",
]
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled"})
ACTIVE_DELIVERY_STATUSES: frozenset[str] = frozenset({"accepted", "picked_up", "in_transit"})

# Who may drive each edge.
ANY_RIDER = "rider"
ASSIGNED_RIDER = "assigned_rider"
OWNER_OR_ADMIN = "owner_or_admin"

TRANSITION_RULES: dict[tuple[str, str], str] = {
    ("pending", "accepted"): ANY_RIDER,
    ("accepted", "picked_up"): ASSIGNED_RIDER,
    ("picked_up", "in_transit"): ASSIGNED_RIDER,
    ("in_transit", "delivered"): ASSIGNED_RIDER,
    ("delivered", "completed"): OWNER_OR_ADMIN,
    ("pending", "cancelled"): OWNER_OR_ADMIN,
}

ALLOWED_TRANSITIONS: dict[str, set[str]] = {status: set() for status in OFFER_STATUSES}
for _current, _new in TRANSITION_RULES:
    ALLOWED_TRANSITIONS[_current].add(_new)

TIMELINE_FIELDS: dict[str, str] = {
    "accepted": "accepted_at",
    "picked_up": "picked_up_at",
    "in_transit": "in_transit_at",
    "delivered": "delivered_at",
    "completed": "completed_at",
    "cancelled": "cancelled_at",
}

FORBIDDEN_MESSAGES: dict[str, str] = {
    ANY_RIDER: "Only riders can accept offers",
    ASSIGNED_RIDER: "Only the assigned rider can update this offer",
    OWNER_OR_ADMIN: "Only the owning business or an admin can perform this action",
}

ALREADY_ACCEPTED_MESSAGE = "Offer has already been accepted by another rider"


def can_transition(current: str, new: str) -> bool:
    """Return whether an offer can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def status_rank(status: str) -> int:
    """Position of a status along the forward lifecycle."""
    return OFFER_STATUSES.index(status)


def is_actor_allowed(rule: str, offer: Offer, actor: User) -> bool:
    if rule == ANY_RIDER:
        return actor.role == "rider"
    if rule == ASSIGNED_RIDER:
        return actor.role == "rider" and offer.rider_id is not None and offer.rider_id == actor.id
    if rule == OWNER_OR_ADMIN:
        return actor.role == "admin" or (actor.role == "business" and offer.business_id == actor.id)
    return False


def check_transition(offer: Offer, new_status: str, actor: User) -> None:
    """Raise unless ``actor`` may move ``offer`` to ``new_status`` right now.

    Raises:
        ConflictError: accepting an offer that already has a rider.
        InvalidTransitionError: the edge is not in the transition table.
        ForbiddenError: the edge exists but the actor may not drive it.
    """
    current = offer.status
    rule = TRANSITION_RULES.get((current, new_status))
    if rule is None:
        if new_status == "accepted" and offer.rider_id is not None and current not in TERMINAL_STATUSES:
            raise ConflictError(ALREADY_ACCEPTED_MESSAGE)
        raise InvalidTransitionError(current, new_status)

    if not is_actor_allowed(rule, offer, actor):
        raise ForbiddenError(FORBIDDEN_MESSAGES[rule])

    if rule == ANY_RIDER and offer.rider_id is not None:
        raise ConflictError(ALREADY_ACCEPTED_MESSAGE)


def timeline_values(new_status: str, now: datetime) -> dict[str, datetime]:
    """Column updates stamping the timeline for ``new_status``."""
    return {TIMELINE_FIELDS[new_status]: now, "updated_at": now}
