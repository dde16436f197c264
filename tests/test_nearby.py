"""Nearby open-offer search."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeRedis, auth_headers, business_payload, rider_payload
from lastmile.main import app
from lastmile.services.cache import Cache, get_cache

API = "/api/v1/offers"
NYC = (40.7128, -74.0060)


@pytest.fixture
def tokens(register) -> dict[str, str]:
    return {
        "business": register(business_payload("shop@example.com"))[1],
        "rider": register(rider_payload("rider@example.com"))[1],
        "other_rider": register(rider_payload("rider2@example.com"))[1],
    }


def _nearby(client: TestClient, token: str, **params):
    query = {"lat": NYC[0], "lng": NYC[1], **params}
    return client.get(f"{API}/nearby", params=query, headers=auth_headers(token))


def test_nearby_filters_by_radius_and_annotates_distance(client: TestClient, tokens, create_offer) -> None:
    here = create_offer(tokens["business"], lat=NYC[0], lng=NYC[1])["id"]
    five_km = create_offer(tokens["business"], lat=NYC[0] + 0.045, lng=NYC[1])["id"]
    create_offer(tokens["business"], lat=NYC[0] + 0.5, lng=NYC[1])
    # inside the bounding box but outside the circle
    create_offer(tokens["business"], lat=NYC[0] + 0.07, lng=NYC[1] + 0.09)

    response = _nearby(client, tokens["rider"], radius=10)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [offer["id"] for offer in data["offers"]] == [here, five_km]
    assert [offer["distance_km"] for offer in data["offers"]] == [0.0, 5.0]
    assert data["pagination"]["total_items"] == 2
    assert data["filters"]["location"] == {"lat": NYC[0], "lng": NYC[1], "radius_km": 10.0}


def test_nearby_excludes_accepted_offers(client: TestClient, tokens, create_offer) -> None:
    taken = create_offer(tokens["business"], lat=NYC[0], lng=NYC[1])["id"]
    open_offer = create_offer(tokens["business"], lat=NYC[0], lng=NYC[1])["id"]
    client.post(f"{API}/{taken}/accept", headers=auth_headers(tokens["rider"]))

    data = _nearby(client, tokens["other_rider"]).json()["data"]

    assert [offer["id"] for offer in data["offers"]] == [open_offer]


def test_nearby_price_filter_and_sort(client: TestClient, tokens, create_offer) -> None:
    cheap = create_offer(tokens["business"], total=8.0)["id"]
    mid = create_offer(tokens["business"], total=18.0)["id"]
    pricey = create_offer(tokens["business"], total=60.0)["id"]

    data = _nearby(client, tokens["rider"], min_price=10, sort_by="price", sort_order="desc").json()["data"]

    assert [offer["id"] for offer in data["offers"]] == [pricey, mid]
    assert cheap not in [offer["id"] for offer in data["offers"]]


def test_nearby_pagination(client: TestClient, tokens, create_offer) -> None:
    ids = [create_offer(tokens["business"], lat=NYC[0] + 0.01 * step, lng=NYC[1])["id"] for step in range(3)]

    data = _nearby(client, tokens["rider"], limit=2, page=2).json()["data"]

    assert [offer["id"] for offer in data["offers"]] == [ids[2]]
    assert data["pagination"]["has_prev"] is True
    assert data["pagination"]["has_next"] is False


@pytest.mark.parametrize(
    "params",
    [
        {"radius": 0},
        {"radius": 101},
        {"lat": 91},
        {"lng": -181},
        {"limit": 51},
        {"sort_by": "rating"},
    ],
)
def test_nearby_rejects_out_of_range_query(client: TestClient, tokens, params) -> None:
    response = _nearby(client, tokens["rider"], **params)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_nearby_is_rider_only(client: TestClient, tokens) -> None:
    response = _nearby(client, tokens["business"])

    assert response.status_code == 403


def test_nearby_results_are_cached_and_invalidated_on_accept(client: TestClient, tokens, create_offer) -> None:
    fake = FakeRedis()
    cache = Cache(fake, prefix="test:", ttls={"nearby_offers": 180, "offer": 300})
    app.dependency_overrides[get_cache] = lambda: cache

    offer_id = create_offer(tokens["business"])["id"]
    first = _nearby(client, tokens["rider"]).json()["data"]
    assert [offer["id"] for offer in first["offers"]] == [offer_id]
    assert any(key.startswith("test:offers:nearby:") for key in fake.store)
    assert 180 in fake.ttls.values()

    client.post(f"{API}/{offer_id}/accept", headers=auth_headers(tokens["rider"]))

    assert not any(key.startswith("test:offers:nearby:") for key in fake.store)
    second = _nearby(client, tokens["other_rider"]).json()["data"]
    assert second["offers"] == []
