"""
Test suite for the chat transcript view and timestamp coercion
"""

from datetime import datetime, timedelta, timezone

import pytest

from tripsync.views.chat import normalize_messages
from tripsync.views.members import build_lookup
from tripsync.views.timestamps import parse_timestamp, to_iso

JAN_10 = datetime(2026, 1, 10, 9, 30, tzinfo=timezone.utc)


class ProviderTimestamp:
    """Stands in for a document-store timestamp object with a to_date() accessor."""

    def __init__(self, value: datetime):
        self.value = value

    def to_date(self) -> datetime:
        return self.value


@pytest.mark.parametrize(
    "raw",
    [
        JAN_10,
        JAN_10.replace(tzinfo=None),
        ProviderTimestamp(JAN_10),
        {"_seconds": int(JAN_10.timestamp()), "_nanoseconds": 0},
        {"seconds": int(JAN_10.timestamp())},
        "2026-01-10T09:30:00Z",
        "2026-01-10T10:30:00+01:00",
        int(JAN_10.timestamp() * 1000),
        str(int(JAN_10.timestamp() * 1000)),
    ],
)
def test_parse_timestamp_shapes(raw):
    assert parse_timestamp(raw) == JAN_10


def test_invalid_timestamp_becomes_now():
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    parsed = datetime.fromisoformat(to_iso("not a date"))
    assert parsed >= before
    assert to_iso("not a date", default_now=False) is None
    assert parse_timestamp(True) is None


def test_messages_sorted_ascending_and_stable():
    records = [
        {"_id": "m3", "message": "third", "timestamp": "2026-01-10T12:00:00Z"},
        {"_id": "m1", "message": "first", "timestamp": {"_seconds": int(JAN_10.timestamp())}},
        {"_id": "m2a", "message": "tie a", "timestamp": "2026-01-10T11:00:00Z"},
        {"_id": "m2b", "message": "tie b", "timestamp": "2026-01-10T11:00:00Z"},
    ]

    ids = [m["id"] for m in normalize_messages(records)]

    assert ids == ["m1", "m2a", "m2b", "m3"]


def test_author_resolution():
    lookup = build_lookup([{"id": "u1", "name": "Alice", "avatar": "alice.png"}])
    messages = normalize_messages(
        [
            {"user": {"name": "Bob", "avatar": "bob.png"}, "message": "a", "timestamp": "2026-01-10T01:00:00Z"},
            {"user": "Cara", "message": "b", "timestamp": "2026-01-10T02:00:00Z"},
            {"userId": "u1", "message": "c", "timestamp": "2026-01-10T03:00:00Z"},
            {"userName": "Dan", "text": "d", "timestamp": "2026-01-10T04:00:00Z"},
            {"message": "e", "timestamp": "2026-01-10T05:00:00Z"},
        ],
        lookup,
    )

    assert [m["user"]["name"] for m in messages] == ["Bob", "Cara", "Alice", "Dan", "Unknown"]
    assert messages[2]["user"]["avatar"] == "alice.png"
    assert messages[3]["message"] == "d"
    assert {m["status"] for m in messages} == {"confirmed"}
    assert messages[4]["id"] == "msg-4"


def test_non_list_input():
    assert normalize_messages(None) == []
    assert normalize_messages({"m1": {}}) == []
