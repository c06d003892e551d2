"""
Member Registry

Resolves a trip's member list into a lookup table keyed by member id. Member
entries have been stored in several shapes over time:

    {"id": "uid", "name": "Alice", "role": "Organizer"}
    {"user": {"_id": "uid", "name": "Alice", "avatar": "..."}, "role": "Member", "status": "Confirmed"}
    {"user": "uid", "name": "Alice"}
    {"userId": "uid", "name": "Alice"}

All of them normalize to ``{id, name, avatar, role, status}``.
"""

import json
from typing import Any

from tripsync.core.errors import BadRequestError

UNKNOWN_NAME = "Unknown"

MEMBER_ROLES = ("Organizer", "Member", "Guest")
MEMBER_STATUSES = ("Confirmed", "Invited")


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _member_id(entry: dict) -> str | None:
    user = entry.get("user")
    candidates = [entry.get("id")]
    if isinstance(user, dict):
        candidates += [user.get("_id"), user.get("id")]
    elif isinstance(user, str):
        candidates.append(user)
    candidates.append(entry.get("userId"))
    for candidate in candidates:
        text = _text(candidate)
        if text:
            return text
    return None


def coerce_member(entry: Any) -> dict | None:
    """Normalize one stored member entry; returns None for entries that carry nothing."""
    if not isinstance(entry, dict):
        if _text(entry):
            # a bare id string
            return {"id": _text(entry), "name": _text(entry), "avatar": None, "role": None, "status": None}
        return None

    user = entry.get("user") if isinstance(entry.get("user"), dict) else {}
    member_id = _member_id(entry)
    name = (
        _text(entry.get("name"))
        or _text(user.get("name"))
        or _text(user.get("displayName"))
        or (member_id if isinstance(entry.get("user"), str) else None)
        or UNKNOWN_NAME
    )

    if member_id is None:
        # Degraded: no stable id, key by name. Two nameless members or two members
        # sharing a display name collide here; writes reject such entries.
        member_id = _text(entry.get("name")) or json.dumps(entry, sort_keys=True, default=str)

    return {
        "id": member_id,
        "name": name,
        "avatar": _text(entry.get("avatar")) or _text(user.get("avatar")) or _text(user.get("photoURL")),
        "role": _text(entry.get("role")),
        "status": _text(entry.get("status")),
    }


def build_lookup(members: Any) -> dict[str, dict]:
    """Map member id -> normalized member. Never raises."""
    lookup: dict[str, dict] = {}
    if not isinstance(members, list):
        return lookup
    for entry in members:
        member = coerce_member(entry)
        if member is not None:
            lookup[member["id"]] = member
    return lookup


def normalize_members(members: Any) -> list[dict]:
    return list(build_lookup(members).values())


def is_member(members: Any, user_id: str) -> bool:
    if not user_id or not isinstance(members, list):
        return False
    return any(isinstance(m, dict) and _member_id(m) == user_id for m in members)


def find_member(members: Any, user_id: str) -> dict | None:
    for entry in members if isinstance(members, list) else []:
        if isinstance(entry, dict) and _member_id(entry) == user_id:
            return coerce_member(entry)
    return None


def validate_members_for_write(members: Any) -> list[dict]:
    """
    Check a member list before it is written.

    Every member needs a stable id (no synthetic name keys), ids are unique and
    roles/statuses come from the known sets. Returns the flat stored shape.
    """
    if not isinstance(members, list):
        raise BadRequestError("Invalid field 'members': expected a list")

    seen: set[str] = set()
    cleaned = []
    for index, entry in enumerate(members):
        member_id = _member_id(entry) if isinstance(entry, dict) else None
        if not member_id:
            raise BadRequestError(f"Invalid field 'members[{index}]': a stable member id is required")
        if member_id in seen:
            raise BadRequestError(f"Invalid field 'members[{index}]': duplicate member id '{member_id}'")
        seen.add(member_id)

        member = coerce_member(entry)
        role = member["role"] or "Member"
        status = member["status"] or "Confirmed"
        if role not in MEMBER_ROLES:
            raise BadRequestError(f"Invalid field 'members[{index}].role': must be one of {', '.join(MEMBER_ROLES)}")
        if status not in MEMBER_STATUSES:
            raise BadRequestError(
                f"Invalid field 'members[{index}].status': must be one of {', '.join(MEMBER_STATUSES)}"
            )

        stored = {"id": member_id, "name": member["name"], "role": role, "status": status}
        if member["avatar"]:
            stored["avatar"] = member["avatar"]
        cleaned.append(stored)

    organizers = [m for m in cleaned if m["role"] == "Organizer"]
    if cleaned and len(organizers) != 1:
        raise BadRequestError("Invalid field 'members': a trip has exactly one Organizer")
    return cleaned


def member_display_name(profile: dict | None, email: str | None) -> str:
    """Display name for a member joining from a profile, else the email's local part."""
    profile = profile or {}
    display = _text(profile.get("displayName")) or _text(profile.get("name"))
    if display:
        return display
    full = " ".join(p for p in (_text(profile.get("firstName")), _text(profile.get("lastName"))) if p)
    if full:
        return full
    if email and "@" in email:
        return email.split("@", 1)[0]
    return email or UNKNOWN_NAME
