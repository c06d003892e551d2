"""
Live View Controller

Client-side mirror of one trip's collaborative state. Every change event from
the live feed re-runs the matching normalizer over the full record list; there
is no incremental diffing.

Chat sends are two-phase. ``begin_send`` shows the message immediately as
``pending`` under a temporary id, then the caller performs the durable write and
reports back with ``confirm_send`` or ``fail_send``. Failed entries stay in the
transcript, marked ``failed``, until ``retry_send`` or ``discard``.
"""

import logging
import uuid
from typing import Any

from tripsync.core.errors import BadRequestError
from tripsync.views import itinerary as itinerary_view
from tripsync.views.chat import STATUS_CONFIRMED, STATUS_FAILED, STATUS_PENDING, normalize_messages
from tripsync.views.expenses import normalize_expenses
from tripsync.views.members import build_lookup, normalize_members
from tripsync.views.timestamps import now_utc, parse_timestamp

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"


class TripLiveView:
    def __init__(self, trip_id: str, start_date: str | None = None, end_date: str | None = None):
        self.trip_id = trip_id
        self.start_date = start_date
        self.end_date = end_date
        self.members: list[dict] = []
        self.itinerary: dict = {"days": [{"day": 1, "activities": [], "hotels": []}]}
        self.expenses: list[dict] = []
        self._server_messages: list[dict] = []
        self._local_messages: dict[str, dict] = {}

    # ---------- feed ----------

    @property
    def member_lookup(self) -> dict[str, dict]:
        return build_lookup(self.members)

    @property
    def messages(self) -> list[dict]:
        server_ids = {m["id"] for m in self._server_messages}
        local = [m for m in self._local_messages.values() if m["id"] not in server_ids]
        return sorted(self._server_messages + local, key=lambda m: parse_timestamp(m["timestamp"]))

    def apply_event(self, event: dict) -> bool:
        """Apply one live-feed event. Returns False when the event was ignored."""
        if not isinstance(event, dict):
            return False
        if event.get("tripId") not in (None, self.trip_id):
            # result for a trip this view no longer shows
            logger.debug("[live_view] Ignoring event for trip %s", event.get("tripId"))
            return False

        kind = event.get("type")
        data = event.get("data")
        if kind == "snapshot" and isinstance(data, dict):
            self.start_date = data.get("startDate", self.start_date)
            self.end_date = data.get("endDate", self.end_date)
            for part in ("members", "itinerary", "expenses", "messages"):
                if part in data:
                    self._apply(part, data[part])
            return True
        if kind in ("members", "itinerary", "activities", "expenses", "messages"):
            self._apply(kind, data)
            return True
        return False

    def _apply(self, kind: str, data: Any) -> None:
        if kind == "members":
            self.members = normalize_members(data)
        elif kind == "itinerary":
            normalized = itinerary_view.normalize({"itinerary": data})
            self.itinerary = itinerary_view.complete_days(normalized, self.start_date, self.end_date)
        elif kind == "activities":
            normalized = itinerary_view.normalize({}, data or [])
            self.itinerary = itinerary_view.complete_days(normalized, self.start_date, self.end_date)
        elif kind == "expenses":
            self.expenses = normalize_expenses(data, self.member_lookup)
        elif kind == "messages":
            self._server_messages = normalize_messages(data, self.member_lookup)
            server_ids = {m["id"] for m in self._server_messages}
            for temp_id, local in list(self._local_messages.items()):
                if local["status"] == STATUS_CONFIRMED and local["id"] in server_ids:
                    del self._local_messages[temp_id]

    # ---------- optimistic chat ----------

    def begin_send(self, user_name: str, text: str, avatar: str | None = None) -> dict:
        if not text or not text.strip():
            raise BadRequestError("Invalid field 'message': message text is required")
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"
        entry = {
            "id": temp_id,
            "user": {"name": user_name or "You", "avatar": avatar},
            "message": text.strip(),
            "timestamp": now_utc().isoformat(),
            "status": STATUS_PENDING,
        }
        self._local_messages[temp_id] = entry
        return dict(entry)

    def confirm_send(self, temp_id: str, server_id: str) -> dict:
        entry = self._local(temp_id)
        entry["id"] = server_id
        entry["status"] = STATUS_CONFIRMED
        entry.pop("error", None)
        return dict(entry)

    def fail_send(self, temp_id: str, error: str) -> dict:
        entry = self._local(temp_id)
        entry["status"] = STATUS_FAILED
        entry["error"] = error
        return dict(entry)

    def retry_send(self, temp_id: str) -> dict:
        entry = self._local(temp_id)
        if entry["status"] != STATUS_FAILED:
            raise BadRequestError(f"Message {temp_id} has not failed")
        entry["status"] = STATUS_PENDING
        entry.pop("error", None)
        return dict(entry)

    def discard(self, temp_id: str) -> None:
        self._local_messages.pop(temp_id, None)

    def _local(self, temp_id: str) -> dict:
        try:
            return self._local_messages[temp_id]
        except KeyError:
            raise BadRequestError(f"Unknown local message {temp_id}")
