"""Shared fixtures: a fresh app with an in-memory database per test."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from api import create_app
from models import storage


class FakeClock:
    """Injectable UTC clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def app(clock: FakeClock):
    app = create_app("test", clock=clock)
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_service(app):
    with app.app_context():
        yield app.extensions["auth_service"]


@pytest.fixture
def register(client):
    """Register a user through the API and return the JSON body."""

    def _register(email: str = "alice@example.com", password: str = "secret123", name: str = "Alice"):
        response = client.post("/auth/register", json={"email": email, "password": password, "name": name})
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _register
