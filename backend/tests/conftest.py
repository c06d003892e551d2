"""
Pytest configuration and fixtures for TripSync tests.

MongoDB is replaced by mongomock-motor; mail delivery is left unconfigured
unless a test overrides the mailer dependency.
"""

import os

# Set test environment variables before importing config
os.environ["RESEND_API_KEY"] = ""
os.environ["EMAIL_FROM"] = ""
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from tripsync.core.security import CurrentUser, create_access_token
from tripsync.db import database
from tripsync.main import app

ORGANIZER = CurrentUser(id="user-olivia", email="olivia@example.com", name="Olivia Organizer")
FRIEND = CurrentUser(id="user-fred", email="friend@example.com", name="Fred Friend")
STRANGER = CurrentUser(id="user-sam", email="sam@example.com", name="Sam Stranger")

PARIS_TRIP = {
    "name": "Paris Trip",
    "destination": "Paris",
    "startDate": "2026-01-10",
    "endDate": "2026-01-12",
    "tripType": "group",
}


def auth_headers(user: CurrentUser) -> dict:
    token = create_access_token(user.id, email=user.email, name=user.name, picture=user.picture)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def mock_db(monkeypatch):
    """Point the database module at a fresh in-memory database."""
    client = AsyncMongoMockClient()
    db = client["tripsync_test"]
    monkeypatch.setattr(database, "_client", client)
    monkeypatch.setattr(database, "_database", db)
    return db


@pytest_asyncio.fixture
async def db(mock_db):
    await database.init_indexes()
    return mock_db


@pytest_asyncio.fixture
async def client(db):
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def paris_trip(client) -> str:
    """The Paris trip created by ORGANIZER; returns its id."""
    res = await client.post("/api/trips", json=PARIS_TRIP, headers=auth_headers(ORGANIZER))
    assert res.status_code == 201, res.text
    return res.json()["tripId"]
