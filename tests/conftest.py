"""Shared fixtures: a per-test SQLite database behind the FastAPI app."""

import fnmatch
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from lastmile.db import session as db_session
from lastmile.db.base import Base
from lastmile.main import app

PASSWORD = "secret123"


class FakeRedis:
    """Minimal dict-backed stand-in for the redis client methods the cache uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match: str):
        return [key for key in list(self.store) if fnmatch.fnmatch(key, match)]


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def session_factory(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = _build_test_engine(tmp_path / "lastmile_test.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    return testing_session_local


@pytest.fixture
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def business_payload(email: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "role": "business",
        "name": "Corner Bakery",
        "email": email,
        "password": PASSWORD,
        "business_name": "Corner Bakery Ltd",
        "business_phone": "+1 555 010 2000",
        "business_address": "1 Market Street",
    }
    payload.update(overrides)
    return payload


def rider_payload(email: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "role": "rider",
        "name": "Rita Rider",
        "email": email,
        "password": PASSWORD,
        "phone": "+1 555 010 3000",
        "vehicle_type": "bike",
    }
    payload.update(overrides)
    return payload


def offer_payload(lat: float = 40.7128, lng: float = -74.0060, total: float = 25.5, **overrides: Any) -> dict[str, Any]:
    payload = {
        "package": {
            "type": "small_package",
            "description": "Box of pastries",
            "weight": 1.5,
            "fragile": True,
        },
        "pickup": {
            "address": "1 Market Street",
            "coordinates": {"lat": lat, "lng": lng},
            "contact_name": "Bakery Counter",
            "contact_phone": "+1 555 010 2000",
        },
        "delivery": {
            "address": "99 Harbor Road",
            "coordinates": {"lat": lat + 0.02, "lng": lng + 0.02},
            "contact_name": "Dana Customer",
            "contact_phone": "+1 555 010 4000",
        },
        "pricing": {"base_price": 20.0, "distance_price": 5.5, "urgency_price": 0, "total": total},
        "urgency": "express",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def register(client: TestClient) -> Callable[[dict[str, Any]], tuple[int, str]]:
    """Register an account and return ``(user_id, token)``."""

    def _register(payload: dict[str, Any]) -> tuple[int, str]:
        response = client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"]["id"], data["access_token"]

    return _register


@pytest.fixture
def create_offer(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _create(token: str, **kwargs: Any) -> dict[str, Any]:
        response = client.post("/api/v1/offers", json=offer_payload(**kwargs), headers=auth_headers(token))
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
