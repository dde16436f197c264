"""Current-user endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from lastmile.core.security import get_current_user
from lastmile.db.session import get_db
from lastmile.models.user import User
from lastmile.schemas.common import ok
from lastmile.schemas.user import AvailabilityUpdate, LocationUpdate, serialize_user
from lastmile.services.cache import Cache, get_cache, user_profile_key
from lastmile.services.user_service import dashboard_for, set_availability, set_location

router: APIRouter = APIRouter()


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user), cache: Cache = Depends(get_cache)) -> dict[str, Any]:
    """Return the caller's profile, served from cache when possible."""
    key = user_profile_key(current_user.id)
    cached = cache.get_json(key)
    if cached is not None:
        return ok(cached)
    view = serialize_user(current_user).model_dump(mode="json")
    cache.set_json("user_profile", key, view)
    return ok(view)


@router.patch("/me/availability")
def update_availability(
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    user = set_availability(db, current_user, payload.is_available)
    cache.delete(user_profile_key(user.id))
    state = "available" if payload.is_available else "unavailable"
    return ok(serialize_user(user).model_dump(mode="json"), f"You are now {state}")


@router.patch("/me/location")
def update_location(
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: Cache = Depends(get_cache),
) -> dict[str, Any]:
    user = set_location(db, current_user, payload.lat, payload.lng)
    cache.delete(user_profile_key(user.id))
    return ok(serialize_user(user).model_dump(mode="json"), "Location updated")


@router.get("/me/dashboard")
def read_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return ok(jsonable_encoder(dashboard_for(db, current_user)))
