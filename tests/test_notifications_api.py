"""Notification inbox endpoints."""

from fastapi.testclient import TestClient

from conftest import auth_headers, business_payload, rider_payload

API = "/api/v1/notifications"


def _inbox(client: TestClient, token: str, **params) -> dict:
    response = client.get(API, params=params, headers=auth_headers(token))
    assert response.status_code == 200
    return response.json()["data"]


def test_inbox_lists_read_and_deletes(client: TestClient, register, create_offer) -> None:
    _, business_token = register(business_payload("shop@example.com"))
    _, rider_token = register(rider_payload("rider@example.com"))
    offer_id = create_offer(business_token)["id"]
    client.post(f"/api/v1/offers/{offer_id}/accept", headers=auth_headers(rider_token))

    inbox = _inbox(client, business_token)
    assert inbox["pagination"]["total_items"] == 2
    assert [item["type"] for item in inbox["notifications"]] == ["offer_accepted", "offer_created"]
    assert all(item["offer_id"] == offer_id for item in inbox["notifications"])

    stats = client.get(f"{API}/stats", headers=auth_headers(business_token)).json()["data"]
    assert stats == {"total": 2, "unread": 2, "by_type": {"offer_created": 1, "offer_accepted": 1}}

    first_id = inbox["notifications"][0]["id"]
    read = client.patch(f"{API}/{first_id}/read", headers=auth_headers(business_token))
    assert read.status_code == 200
    assert read.json()["data"]["is_read"] is True
    assert read.json()["data"]["read_at"] is not None

    unread = _inbox(client, business_token, unread_only=True)
    assert [item["type"] for item in unread["notifications"]] == ["offer_created"]

    marked = client.post(f"{API}/read-all", headers=auth_headers(business_token))
    assert marked.json()["data"] == {"updated": 1}
    assert _inbox(client, business_token, unread_only=True)["notifications"] == []

    deleted = client.delete(f"{API}/{first_id}", headers=auth_headers(business_token))
    assert deleted.status_code == 200
    assert _inbox(client, business_token)["pagination"]["total_items"] == 1


def test_other_users_notifications_are_not_found(client: TestClient, register, create_offer) -> None:
    _, business_token = register(business_payload("shop@example.com"))
    _, rider_token = register(rider_payload("rider@example.com"))
    create_offer(business_token)
    notification_id = _inbox(client, business_token)["notifications"][0]["id"]

    assert client.patch(f"{API}/{notification_id}/read", headers=auth_headers(rider_token)).status_code == 404
    assert client.delete(f"{API}/{notification_id}", headers=auth_headers(rider_token)).status_code == 404
    assert _inbox(client, rider_token)["notifications"] == []
    assert _inbox(client, business_token)["notifications"][0]["is_read"] is False
