"""Registration, login and token handling."""

import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, auth_headers, business_payload, rider_payload
from lastmile.core.errors import ForbiddenError
from lastmile.core.security import require_role
from lastmile.models.user import User


def test_register_business_returns_tagged_view_and_token(client: TestClient) -> None:
    response = client.post("/api/v1/auth/register", json=business_payload("Shop@Example.com"))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["role"] == "business"
    assert user["email"] == "shop@example.com"
    assert user["profile"]["business_name"] == "Corner Bakery Ltd"
    assert user["profile"]["total_offers"] == 0
    assert body["data"]["token_type"] == "bearer"


def test_register_rider_defaults_to_available(client: TestClient) -> None:
    response = client.post("/api/v1/auth/register", json=rider_payload("rider@example.com"))

    assert response.status_code == 201
    profile = response.json()["data"]["user"]["profile"]
    assert profile["is_available"] is True
    assert profile["vehicle_type"] == "bike"
    assert profile["stats"] == {"active_deliveries": 0, "total_deliveries": 0, "total_pickups": 0}
    assert profile["rating"] == {"average": 0.0, "count": 0}


def test_register_rejects_duplicate_email(client: TestClient) -> None:
    assert client.post("/api/v1/auth/register", json=rider_payload("dup@example.com")).status_code == 201

    response = client.post("/api/v1/auth/register", json=business_payload("dup@example.com"))

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


def test_register_rejects_admin_role(client: TestClient) -> None:
    payload = rider_payload("sneaky@example.com")
    payload["role"] = "admin"

    response = client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_register_rejects_unknown_vehicle(client: TestClient) -> None:
    response = client.post("/api/v1/auth/register", json=rider_payload("v@example.com", vehicle_type="horse"))

    assert response.status_code == 400
    fields = [item["field"] for item in response.json()["error"]["details"]]
    assert any("vehicle_type" in field for field in fields)


def test_login_and_me(client: TestClient) -> None:
    client.post("/api/v1/auth/register", json=rider_payload("login@example.com"))

    login = client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": PASSWORD})
    assert login.status_code == 200
    token = login.json()["data"]["access_token"]

    me = client.get("/api/v1/auth/me", headers=auth_headers(token))
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "login@example.com"
    assert me.json()["data"]["role"] == "rider"


def test_login_wrong_password_is_unauthorized(client: TestClient) -> None:
    client.post("/api/v1/auth/register", json=rider_payload("wrong@example.com"))

    response = client.post("/api/v1/auth/login", json={"email": "wrong@example.com", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "UNAUTHORIZED", "message": "Incorrect email or password"},
    }


def test_missing_or_bad_token_is_unauthorized(client: TestClient) -> None:
    assert client.get("/api/v1/auth/me").status_code == 401
    response = client.get("/api/v1/auth/me", headers=auth_headers("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_dev_admin_is_seeded_on_startup(client: TestClient) -> None:
    response = client.post("/api/v1/auth/login", json={"email": "admin@lastmile.local", "password": "admin123"})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"


def test_require_role_admits_only_listed_roles() -> None:
    gate = require_role("business", "admin")
    business = User(email="shop@example.com", name="Shop", password_hash="x", role="business")
    rider = User(email="rider@example.com", name="Rider", password_hash="x", role="rider")

    assert gate(current_user=business) is business
    with pytest.raises(ForbiddenError) as excinfo:
        gate(current_user=rider)
    assert excinfo.value.message == "Access denied. Required role: business or admin"
