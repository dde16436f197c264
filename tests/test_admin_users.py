"""Admin account management, platform summary and announcements."""

import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, auth_headers, business_payload, rider_payload

API = "/api/v1/admin"


@pytest.fixture
def admin_token(client: TestClient) -> str:
    response = client.post("/api/v1/auth/login", json={"email": "admin@lastmile.local", "password": "admin123"})
    assert response.status_code == 200, response.text
    return response.json()["data"]["access_token"]


def test_suspended_rider_cannot_log_in_or_use_token(client: TestClient, register, admin_token: str) -> None:
    rider_id, rider_token = register(rider_payload("rider@example.com"))

    response = client.patch(
        f"{API}/users/{rider_id}/suspend", json={"reason": "Repeated no-shows"}, headers=auth_headers(admin_token)
    )
    assert response.status_code == 200, response.text
    user = response.json()["data"]
    assert user["is_active"] is False
    assert user["suspension_reason"] == "Repeated no-shows"
    assert user["suspended_at"] is not None

    login = client.post("/api/v1/auth/login", json={"email": "rider@example.com", "password": PASSWORD})
    assert login.status_code == 401
    assert login.json()["error"]["code"] == "UNAUTHORIZED"

    me = client.get("/api/v1/users/me", headers=auth_headers(rider_token))
    assert me.status_code == 401
    assert me.json()["error"]["message"] == "Account is deactivated"


def test_reactivated_rider_regains_access(client: TestClient, register, admin_token: str) -> None:
    rider_id, rider_token = register(rider_payload("rider@example.com"))
    client.patch(f"{API}/users/{rider_id}/suspend", headers=auth_headers(admin_token))

    response = client.patch(f"{API}/users/{rider_id}/reactivate", headers=auth_headers(admin_token))

    assert response.status_code == 200, response.text
    user = response.json()["data"]
    assert user["is_active"] is True
    assert user["suspended_at"] is None
    assert user["suspension_reason"] is None
    assert client.get("/api/v1/users/me", headers=auth_headers(rider_token)).status_code == 200
    login = client.post("/api/v1/auth/login", json={"email": "rider@example.com", "password": PASSWORD})
    assert login.status_code == 200


def test_admin_accounts_cannot_be_suspended(client: TestClient, admin_token: str) -> None:
    admin_id = client.get("/api/v1/users/me", headers=auth_headers(admin_token)).json()["data"]["id"]

    response = client.patch(f"{API}/users/{admin_id}/suspend", headers=auth_headers(admin_token))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_admin_endpoints_reject_other_roles(client: TestClient, register) -> None:
    business_id, business_token = register(business_payload("shop@example.com"))
    _, rider_token = register(rider_payload("rider@example.com"))

    for token in (business_token, rider_token):
        assert client.get(f"{API}/users", headers=auth_headers(token)).status_code == 403
        assert client.get(f"{API}/dashboard", headers=auth_headers(token)).status_code == 403
        suspend = client.patch(f"{API}/users/{business_id}/suspend", headers=auth_headers(token))
        assert suspend.status_code == 403
    assert client.get(f"{API}/users").status_code == 401


def test_list_users_filters_by_role_and_paginates(client: TestClient, register, admin_token: str) -> None:
    register(business_payload("shop@example.com"))
    for index in range(3):
        register(rider_payload(f"rider{index}@example.com", name=f"Rider {index}"))

    first = client.get(f"{API}/users", params={"role": "rider", "limit": 2}, headers=auth_headers(admin_token))
    assert first.status_code == 200, first.text
    data = first.json()["data"]
    assert [user["email"] for user in data["users"]] == ["rider2@example.com", "rider1@example.com"]
    assert data["pagination"]["total_items"] == 3
    assert data["pagination"]["has_next"] is True

    second = client.get(
        f"{API}/users", params={"role": "rider", "limit": 2, "page": 2}, headers=auth_headers(admin_token)
    ).json()["data"]
    assert [user["email"] for user in second["users"]] == ["rider0@example.com"]
    assert second["pagination"]["has_prev"] is True

    searched = client.get(f"{API}/users", params={"search": "SHOP@"}, headers=auth_headers(admin_token))
    assert [user["role"] for user in searched.json()["data"]["users"]] == ["business"]


def test_list_users_filters_by_active_flag(client: TestClient, register, admin_token: str) -> None:
    rider_id, _ = register(rider_payload("rider@example.com"))
    register(rider_payload("rider2@example.com"))
    client.patch(f"{API}/users/{rider_id}/suspend", headers=auth_headers(admin_token))

    response = client.get(f"{API}/users", params={"is_active": "false"}, headers=auth_headers(admin_token))

    assert [user["id"] for user in response.json()["data"]["users"]] == [rider_id]


def test_read_user_includes_recent_offers(client: TestClient, register, create_offer, admin_token: str) -> None:
    business_id, business_token = register(business_payload("shop@example.com"))
    offer_id = create_offer(business_token)["id"]

    response = client.get(f"{API}/users/{business_id}", headers=auth_headers(admin_token))

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["user"]["profile"]["business_name"] == "Corner Bakery Ltd"
    assert [offer["id"] for offer in data["recent_offers"]] == [offer_id]


def test_read_unknown_user_is_not_found(client: TestClient, admin_token: str) -> None:
    response = client.get(f"{API}/users/9999", headers=auth_headers(admin_token))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_dashboard_summarises_platform(client: TestClient, register, create_offer, admin_token: str) -> None:
    _, business_token = register(business_payload("shop@example.com"))
    register(rider_payload("rider@example.com"))
    create_offer(business_token)

    response = client.get(f"{API}/dashboard", headers=auth_headers(admin_token))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["offers_by_status"]["pending"] == 1
    assert data["users_by_role"] == {"admin": 1, "business": 1, "rider": 1}


def test_announcement_reaches_active_users_of_role(client: TestClient, register, admin_token: str) -> None:
    _, business_token = register(business_payload("shop@example.com"))
    _, rider_token = register(rider_payload("rider@example.com"))
    suspended_id, _ = register(rider_payload("rider2@example.com"))
    client.patch(f"{API}/users/{suspended_id}/suspend", headers=auth_headers(admin_token))

    response = client.post(
        f"{API}/announcements",
        json={"title": "Holiday hours", "message": "Pickups close at 6pm on Friday.", "role": "rider"},
        headers=auth_headers(admin_token),
    )

    assert response.status_code == 202, response.text
    assert response.json()["data"] == {"recipients": 1}
    rider_inbox = client.get("/api/v1/notifications", headers=auth_headers(rider_token)).json()["data"]
    assert [(item["type"], item["title"]) for item in rider_inbox["notifications"]] == [
        ("system_announcement", "Holiday hours")
    ]
    business_inbox = client.get("/api/v1/notifications", headers=auth_headers(business_token)).json()["data"]
    assert business_inbox["notifications"] == []
