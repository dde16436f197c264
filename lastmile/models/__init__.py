"""Application models package."""

from lastmile.models.notification import Notification
from lastmile.models.offer import Offer, StatusHistoryEntry
from lastmile.models.user import BusinessProfile, RiderProfile, User

__all__ = ["User", "BusinessProfile", "RiderProfile", "Offer", "StatusHistoryEntry", "Notification"]
