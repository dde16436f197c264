"""Offer API schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from lastmile.models.offer import Offer
from lastmile.schemas.common import GeoPoint, Pagination
from lastmile.services.offer_status import TIMELINE_FIELDS
from lastmile.utils.time import as_utc

PackageType = Literal["document", "small_package", "medium_package", "large_package", "food", "fragile"]
Urgency = Literal["standard", "express", "same_day", "scheduled"]
PHONE_PATTERN = r"^\+?[\d\s\-\(\)]{10,}$"


class Dimensions(BaseModel):
    """Package dimensions in centimetres."""

    length: float = Field(ge=0, le=1000)
    width: float = Field(ge=0, le=1000)
    height: float = Field(ge=0, le=1000)


class PackageDetails(BaseModel):
    type: PackageType
    description: str = Field(min_length=1, max_length=500)
    weight: float | None = Field(default=None, ge=0, le=1000)
    dimensions: Dimensions | None = None
    value: float | None = Field(default=None, ge=0)
    fragile: bool = False
    requires_signature: bool = False


class StopCreate(BaseModel):
    """Pickup or delivery point as submitted by the business."""

    address: str = Field(min_length=1, max_length=500)
    coordinates: GeoPoint
    contact_name: str = Field(min_length=1, max_length=255)
    contact_phone: str = Field(pattern=PHONE_PATTERN)
    scheduled_time: datetime | None = None
    instructions: str | None = Field(default=None, max_length=500)


class StopRead(StopCreate):
    """Stop sub-document including details recorded during fulfillment."""

    actual_time: datetime | None = None
    actual_location: GeoPoint | None = None
    confirmation_code: str | None = None
    notes: str | None = None
    photo_url: str | None = None
    recipient_name: str | None = None
    signature_url: str | None = None

    model_config = ConfigDict(extra="ignore")


class Pricing(BaseModel):
    base_price: float = Field(ge=0)
    distance_price: float = Field(default=0, ge=0)
    urgency_price: float = Field(default=0, ge=0)
    total: float = Field(gt=0)


class OfferCreate(BaseModel):
    """Payload for posting a new offer."""

    package: PackageDetails
    pickup: StopCreate
    delivery: StopCreate
    pricing: Pricing
    urgency: Urgency = "standard"
    special_instructions: str | None = Field(default=None, max_length=1000)
    estimated_duration_minutes: int = Field(default=60, ge=1, le=1440)


class OfferUpdate(BaseModel):
    """Partial edit of a pending, unassigned offer."""

    package: PackageDetails | None = None
    pickup: StopCreate | None = None
    delivery: StopCreate | None = None
    pricing: Pricing | None = None
    urgency: Urgency | None = None
    special_instructions: str | None = Field(default=None, max_length=1000)
    estimated_duration_minutes: int | None = Field(default=None, ge=1, le=1440)


class TransitionRequest(BaseModel):
    """Fields accepted by every status transition."""

    notes: str | None = Field(default=None, max_length=500)
    location: GeoPoint | None = None

    model_config = ConfigDict(extra="forbid")


class PickupConfirmation(TransitionRequest):
    confirmation_code: str | None = Field(default=None, max_length=64)
    photo_url: str | None = Field(default=None, max_length=1000)


class InTransitUpdate(TransitionRequest):
    estimated_delivery_time: datetime | None = None


class DeliveryConfirmation(TransitionRequest):
    recipient_name: str = Field(min_length=1, max_length=255)
    confirmation_code: str | None = Field(default=None, max_length=64)
    photo_url: str | None = Field(default=None, max_length=1000)
    signature_url: str | None = Field(default=None, max_length=1000)


class CompletionRequest(TransitionRequest):
    rider_rating: int | None = Field(default=None, ge=1, le=5)
    rider_rating_comment: str | None = Field(default=None, max_length=500)


class CancellationRequest(TransitionRequest):
    reason: str | None = Field(default=None, max_length=500)


TRANSITION_PAYLOADS: dict[str, type[TransitionRequest]] = {
    "accepted": TransitionRequest,
    "picked_up": PickupConfirmation,
    "in_transit": InTransitUpdate,
    "delivered": DeliveryConfirmation,
    "completed": CompletionRequest,
    "cancelled": CancellationRequest,
}


class StatusHistoryRead(BaseModel):
    sequence: int
    status: str
    timestamp: datetime
    updated_by: int
    notes: str | None = None
    location: GeoPoint | None = None


class BusinessRating(BaseModel):
    rating: int
    comment: str | None = None
    rated_by: int
    rated_at: datetime


class OfferRead(BaseModel):
    """Serialized offer."""

    id: int
    business_id: int
    rider_id: int | None = None
    status: str
    urgency: str
    package: PackageDetails
    pickup: StopRead
    delivery: StopRead
    pricing: Pricing
    special_instructions: str | None = None
    estimated_duration_minutes: int
    timeline: dict[str, datetime]
    status_history: list[StatusHistoryRead]
    business_rating: BusinessRating | None = None
    created_at: datetime
    updated_at: datetime


class NearbyOfferRead(OfferRead):
    distance_km: float


class OfferList(BaseModel):
    offers: list[OfferRead]
    pagination: Pagination
    filters: dict[str, Any]


class NearbyOfferList(BaseModel):
    offers: list[NearbyOfferRead]
    pagination: Pagination
    filters: dict[str, Any]


def serialize_offer(offer: Offer) -> OfferRead:
    """Build the API view of an offer with its sparse timeline."""
    timeline: dict[str, datetime] = {}
    for field in TIMELINE_FIELDS.values():
        value = as_utc(getattr(offer, field))
        if value is not None:
            timeline[field] = value
    if offer.estimated_delivery_at is not None:
        timeline["estimated_delivery_at"] = as_utc(offer.estimated_delivery_at)

    history = [
        StatusHistoryRead(
            sequence=entry.sequence,
            status=entry.status,
            timestamp=as_utc(entry.timestamp),
            updated_by=entry.updated_by,
            notes=entry.notes,
            location=(
                GeoPoint(lat=entry.location_lat, lng=entry.location_lng)
                if entry.location_lat is not None and entry.location_lng is not None
                else None
            ),
        )
        for entry in offer.status_history
    ]

    return OfferRead(
        id=offer.id,
        business_id=offer.business_id,
        rider_id=offer.rider_id,
        status=offer.status,
        urgency=offer.urgency,
        package=PackageDetails.model_validate(offer.package),
        pickup=StopRead.model_validate(offer.pickup),
        delivery=StopRead.model_validate(offer.delivery),
        pricing=Pricing.model_validate(offer.pricing),
        special_instructions=offer.special_instructions,
        estimated_duration_minutes=offer.estimated_duration_minutes,
        timeline=timeline,
        status_history=history,
        business_rating=BusinessRating.model_validate(offer.business_rating) if offer.business_rating else None,
        created_at=as_utc(offer.created_at),
        updated_at=as_utc(offer.updated_at),
    )
