"""
Test suite for the live trip feed
Client-side view controller, the server hub and the WebSocket route
"""

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError
from starlette.websockets import WebSocketDisconnect

from conftest import FRIEND, ORGANIZER, PARIS_TRIP, auth_headers
from tripsync.core.errors import BadRequestError
from tripsync.core.security import create_access_token
from tripsync.main import app
from tripsync.services import live_hub
from tripsync.services.live_hub import hub
from tripsync.views.live import TripLiveView

SNAPSHOT = {
    "type": "snapshot",
    "tripId": "trip-1",
    "data": {
        "startDate": "2026-01-10",
        "endDate": "2026-01-12",
        "members": [{"user": {"_id": "u1", "name": "Alice"}, "role": "Organizer"}],
        "itinerary": {"days": [{"day": 2, "activities": [{"title": "Seine Cruise"}]}]},
        "expenses": [{"_id": "e1", "description": "Taxi", "amount": "abc", "paidByUserId": "u1"}],
        "messages": [{"_id": "m1", "userId": "u1", "message": "hello", "timestamp": "2026-01-01T10:00:00Z"}],
    },
}


def _token(user):
    return create_access_token(user.id, email=user.email, name=user.name)


class FakeSocket:
    def __init__(self, dead: bool = False):
        self.dead = dead
        self.sent = []

    async def send_json(self, data):
        if self.dead:
            raise RuntimeError("socket closed")
        self.sent.append(data)


# ── TripLiveView ────────────────────────────────────────────────────────────


def test_snapshot_is_normalized():
    view = TripLiveView("trip-1")

    assert view.apply_event(SNAPSHOT) is True

    assert [d["day"] for d in view.itinerary["days"]] == [1, 2, 3]
    assert view.itinerary["days"][1]["activities"][0]["title"] == "Seine Cruise"
    assert view.expenses[0]["amount"] == 0
    assert view.expenses[0]["paidBy"]["name"] == "Alice"
    assert view.messages[0]["user"]["name"] == "Alice"
    assert view.members[0]["id"] == "u1"


def test_events_for_another_trip_are_ignored():
    view = TripLiveView("trip-2")
    assert view.apply_event(SNAPSHOT) is False
    assert view.messages == []
    assert view.apply_event({"type": "unknown", "tripId": "trip-2"}) is False


def test_optimistic_send_confirmed():
    view = TripLiveView("trip-1")
    view.apply_event(SNAPSHOT)

    pending = view.begin_send("Alice", "  on my way ")
    assert pending["status"] == "pending"
    assert pending["id"].startswith("temp-")
    assert [m["message"] for m in view.messages] == ["hello", "on my way"]

    view.confirm_send(pending["id"], "m2")
    assert view.messages[-1]["status"] == "confirmed"
    assert view.messages[-1]["id"] == "m2"

    server_messages = SNAPSHOT["data"]["messages"] + [
        {"_id": "m2", "userId": "u1", "message": "on my way", "timestamp": "2026-01-01T10:05:00Z"}
    ]
    view.apply_event({"type": "messages", "tripId": "trip-1", "data": server_messages})
    assert [m["id"] for m in view.messages] == ["m1", "m2"]


def test_failed_send_is_kept_and_retryable():
    view = TripLiveView("trip-1")
    pending = view.begin_send("Alice", "lost message")

    failed = view.fail_send(pending["id"], "network down")
    assert failed["status"] == "failed"
    assert view.messages[0]["error"] == "network down"

    # a fresh snapshot keeps the unconfirmed entry
    view.apply_event(SNAPSHOT)
    assert [m["status"] for m in view.messages] == ["confirmed", "failed"]

    retried = view.retry_send(pending["id"])
    assert retried["status"] == "pending"
    assert "error" not in view.messages[-1]

    with pytest.raises(BadRequestError):
        view.retry_send(pending["id"])

    view.discard(pending["id"])
    assert [m["id"] for m in view.messages] == ["m1"]


def test_begin_send_rejects_empty_text():
    view = TripLiveView("trip-1")
    with pytest.raises(BadRequestError):
        view.begin_send("Alice", "   ")
    with pytest.raises(BadRequestError):
        view.confirm_send("temp-unknown", "m9")


# ── LiveHub ─────────────────────────────────────────────────────────────────


async def test_writes_are_published_to_subscribers(client, paris_trip):
    subscriber, dead = FakeSocket(), FakeSocket(dead=True)
    hub.connect(paris_trip, subscriber)
    hub.connect(paris_trip, dead)
    try:
        res = await client.post(
            f"/api/trips/{paris_trip}/messages", json={"message": "bonjour"}, headers=auth_headers(ORGANIZER)
        )
        assert res.status_code == 201
    finally:
        hub.disconnect(paris_trip, subscriber)
        hub.disconnect(paris_trip, dead)

    event = subscriber.sent[-1]
    assert event["type"] == "messages"
    assert event["tripId"] == paris_trip
    assert [m["message"] for m in event["data"]] == ["bonjour"]
    assert dead.sent == []


async def test_failed_publish_does_not_fail_committed_write(client, db, paris_trip, monkeypatch):
    async def unreachable(trip_id):
        raise ServerSelectionTimeoutError("no servers available")

    subscriber = FakeSocket()
    hub.connect(paris_trip, subscriber)
    monkeypatch.setattr(live_hub, "get_trip_or_404", unreachable)
    try:
        res = await client.post(
            f"/api/trips/{paris_trip}/expenses",
            json={"description": "Metro pass", "amount": 16.9},
            headers=auth_headers(ORGANIZER),
        )
    finally:
        hub.disconnect(paris_trip, subscriber)

    assert res.status_code == 201
    assert subscriber.sent == []
    assert await db.expenses.count_documents({"trip_id": paris_trip}) == 1


async def test_publish_without_subscribers_is_a_no_op(client, paris_trip):
    assert hub.subscribers(paris_trip) == 0
    await hub.publish(paris_trip, "itinerary")


# ── WebSocket route ─────────────────────────────────────────────────────────


def test_live_socket_sends_snapshot_and_pongs(mock_db):
    client = TestClient(app)
    trip_id = client.post("/api/trips", json=PARIS_TRIP, headers=auth_headers(ORGANIZER)).json()["tripId"]

    with client.websocket_connect(f"/api/trips/{trip_id}/live?token={_token(ORGANIZER)}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert snapshot["tripId"] == trip_id
        assert len(snapshot["data"]["itinerary"]["days"]) == 3
        assert snapshot["data"]["members"][0]["id"] == ORGANIZER.id
        assert snapshot["data"]["messages"] == []

        ws.send_text("not json")
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

    assert hub.subscribers(trip_id) == 0


@pytest.mark.parametrize(
    "trip, token, code",
    [
        ("existing", None, 4401),
        ("existing", "garbage", 4401),
        ("existing", "friend", 4403),
        ("000000000000000000000000", "organizer", 4404),
    ],
)
def test_live_socket_rejections(mock_db, trip, token, code):
    client = TestClient(app)
    if trip == "existing":
        trip = client.post("/api/trips", json=PARIS_TRIP, headers=auth_headers(ORGANIZER)).json()["tripId"]
    tokens = {"friend": _token(FRIEND), "organizer": _token(ORGANIZER), "garbage": "garbage"}
    url = f"/api/trips/{trip}/live"
    if token:
        url += f"?token={tokens[token]}"

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(url) as ws:
            ws.receive_json()

    assert excinfo.value.code == code
