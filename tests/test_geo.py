"""Distance and bounding-box helpers."""

import pytest

from lastmile.services.geo import bounding_box, haversine_km


def test_zero_distance() -> None:
    assert haversine_km(51.5, -0.12, 51.5, -0.12) == 0


def test_one_degree_of_latitude() -> None:
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


def test_known_city_pair() -> None:
    # New York to Los Angeles
    distance = haversine_km(40.7128, -74.0060, 34.0522, -118.2437)
    assert distance == pytest.approx(3936, rel=0.01)


def test_distance_is_symmetric() -> None:
    assert haversine_km(10, 20, -5, 33) == pytest.approx(haversine_km(-5, 33, 10, 20))


def test_bounding_box_contains_radius() -> None:
    lat, lng, radius = 40.7128, -74.0060, 10
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius)
    assert min_lat < lat < max_lat
    assert min_lng < lng < max_lng
    assert haversine_km(lat, lng, max_lat, lng) == pytest.approx(radius, rel=1e-6)
    assert haversine_km(lat, lng, lat, max_lng) >= radius


def test_bounding_box_near_pole_spans_all_longitudes() -> None:
    _, max_lat, min_lng, max_lng = bounding_box(89.99, 10, 50)
    assert max_lat == 90.0
    assert (min_lng, max_lng) == (-180.0, 180.0)


def test_bounding_box_across_antimeridian_spans_all_longitudes() -> None:
    _, _, min_lng, max_lng = bounding_box(0, 179.99, 20)
    assert (min_lng, max_lng) == (-180.0, 180.0)
