"""
Chat Transcript View

Normalizes stored chat records to ``{id, user: {name, avatar}, message, timestamp, status}``,
ordered by timestamp ascending.
"""

from typing import Any

from tripsync.views.members import UNKNOWN_NAME
from tripsync.views.timestamps import parse_timestamp, to_iso

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_FAILED = "failed"


def coerce_author(raw: dict, member_lookup: dict[str, dict]) -> dict:
    """Resolve the author: user object, bare user string, userId lookup, userName, else Unknown."""
    user = raw.get("user")
    if isinstance(user, dict):
        return {
            "name": str(user.get("name") or user.get("displayName") or UNKNOWN_NAME),
            "avatar": user.get("avatar") or user.get("photoURL"),
        }
    if isinstance(user, str) and user.strip():
        return {"name": user.strip(), "avatar": None}

    member = member_lookup.get(str(raw.get("userId") or ""))
    if member:
        return {"name": member["name"], "avatar": member.get("avatar")}

    for key in ("userName", "name"):
        if isinstance(raw.get(key), str) and raw[key].strip():
            return {"name": raw[key].strip(), "avatar": None}
    return {"name": UNKNOWN_NAME, "avatar": None}


def coerce_message(raw: Any, member_lookup: dict[str, dict], index: int = 0) -> dict:
    raw = raw if isinstance(raw, dict) else {}
    record_id = raw.get("_id", raw.get("id"))
    return {
        "id": str(record_id) if record_id not in (None, "") else f"msg-{index}",
        "user": coerce_author(raw, member_lookup),
        "message": str(raw.get("message") or raw.get("text") or ""),
        "timestamp": to_iso(raw.get("timestamp") or raw.get("createdAt")),
        "status": raw.get("status") if raw.get("status") in (STATUS_PENDING, STATUS_FAILED) else STATUS_CONFIRMED,
    }


def _sort_key(message: dict):
    return parse_timestamp(message["timestamp"])


def normalize_messages(records: Any, member_lookup: dict[str, dict] | None = None) -> list[dict]:
    """Normalize and sort ascending by timestamp; ties keep stored order."""
    if not isinstance(records, list):
        return []
    lookup = member_lookup or {}
    messages = [coerce_message(raw, lookup, i) for i, raw in enumerate(records)]
    return sorted(messages, key=_sort_key)
