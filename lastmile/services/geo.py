"""Great-circle distance helpers for the nearby-offer query."""

from __future__ import annotations

import math

EARTH_RADIUS_KM: float = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the Haversine distance in kilometres between two points."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lng, max_lng)`` enclosing the radius.

    The box is a superset of the circle, so callers still compare the exact
    distance. Near the poles and across the antimeridian the longitude span
    covers the whole globe.
    """
    d_lat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(lat - d_lat, -90.0)
    max_lat = min(lat + d_lat, 90.0)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat <= 1e-9 or max_lat >= 90.0 or min_lat <= -90.0:
        return min_lat, max_lat, -180.0, 180.0

    ratio = math.sin(radius_km / EARTH_RADIUS_KM) / cos_lat
    if ratio >= 1.0:
        return min_lat, max_lat, -180.0, 180.0
    d_lng = math.degrees(math.asin(ratio))
    if d_lng >= 180.0 or lng - d_lng < -180.0 or lng + d_lng > 180.0:
        # Wraps the antimeridian; fall back to the full longitude range.
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, lng - d_lng, lng + d_lng
