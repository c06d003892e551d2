"""
Reaction Aggregator

Per-user like/dislike votes on an activity or hotel suggestion. A user holds
at most one reaction per item:

    no reaction      -> append
    same type again  -> remove (toggle off)
    opposite type    -> switch in place
"""

from typing import Any

from tripsync.core.errors import BadRequestError

REACTION_TYPES = ("like", "dislike")


def coerce_reaction(entry: Any) -> dict | None:
    """
    Normalize a stored reaction to ``{userId, userName, type}``.

    Older entries look like ``{"user": {"_id": ..., "name": ...}, "type": ...}``.
    Entries without a user id or with an unknown type are dropped.
    """
    if not isinstance(entry, dict):
        return None
    reaction_type = str(entry.get("type") or "").strip().lower()
    if reaction_type not in REACTION_TYPES:
        return None

    user = entry.get("user") if isinstance(entry.get("user"), dict) else {}
    user_id = entry.get("userId") or user.get("_id") or user.get("id")
    if isinstance(entry.get("user"), str):
        user_id = user_id or entry["user"]
    if not user_id:
        return None

    user_name = entry.get("userName") or user.get("name") or "Unknown"
    return {"userId": str(user_id), "userName": str(user_name), "type": reaction_type}


def normalize_reactions(reactions: Any) -> list[dict]:
    """Coerce a stored reaction list, keeping the first entry per user."""
    if not isinstance(reactions, list):
        return []
    seen: set[str] = set()
    out = []
    for entry in reactions:
        reaction = coerce_reaction(entry)
        if reaction is None or reaction["userId"] in seen:
            continue
        seen.add(reaction["userId"])
        out.append(reaction)
    return out


def apply_reaction(existing: Any, user_id: str, user_name: str, reaction_type: str) -> list[dict]:
    """Return the reaction list after ``user_id`` reacts with ``reaction_type``. Pure."""
    reaction_type = str(reaction_type or "").strip().lower()
    if reaction_type not in REACTION_TYPES:
        raise BadRequestError(f"Invalid field 'type': must be one of {', '.join(REACTION_TYPES)}")
    if not user_id:
        raise BadRequestError("Invalid field 'userId': a user id is required")

    reactions = normalize_reactions(existing)
    for index, reaction in enumerate(reactions):
        if reaction["userId"] != user_id:
            continue
        if reaction["type"] == reaction_type:
            return reactions[:index] + reactions[index + 1:]
        switched = {"userId": user_id, "userName": user_name or reaction["userName"], "type": reaction_type}
        return reactions[:index] + [switched] + reactions[index + 1:]

    return reactions + [{"userId": user_id, "userName": user_name or "Unknown", "type": reaction_type}]


def summarize(reactions: Any) -> dict[str, int]:
    counts = {t: 0 for t in REACTION_TYPES}
    for reaction in normalize_reactions(reactions):
        counts[reaction["type"]] += 1
    return counts
