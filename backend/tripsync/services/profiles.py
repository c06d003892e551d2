"""
User profile lookups. The ``users`` collection is keyed by ``uid`` (the
identity-provider subject carried in the bearer token).
"""

import logging

from tripsync.core.security import CurrentUser
from tripsync.db.database import get_users_collection
from tripsync.views.timestamps import now_utc, to_iso

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("uid", "firstName", "lastName", "displayName", "email", "mobile", "picture")


def serialize_profile(doc: dict) -> dict:
    profile = {key: doc.get(key) for key in PROFILE_FIELDS if doc.get(key) is not None}
    for key in ("createdAt", "updatedAt"):
        if doc.get(key) is not None:
            profile[key] = to_iso(doc[key], default_now=False)
    return profile


async def load_profile(user_id: str) -> dict | None:
    return await get_users_collection().find_one({"uid": user_id})


async def resolve_profile(user: CurrentUser) -> dict:
    """Stored profile for the caller, falling back to the token claims."""
    stored = await load_profile(user.id)
    if stored:
        profile = serialize_profile(stored)
        profile.setdefault("email", user.email)
        return profile
    logger.debug("[resolve_profile] No stored profile for %s, using token claims", user.id)
    return {"uid": user.id, "email": user.email, "displayName": user.name, "picture": user.picture}


async def resolve_email(user: CurrentUser) -> str | None:
    email = (await resolve_profile(user)).get("email")
    return email.strip().lower() if isinstance(email, str) and email.strip() else None


async def upsert_profile(user: CurrentUser, fields: dict) -> dict:
    """Create or merge the caller's profile; returns the stored document."""
    now = now_utc()
    update = {key: value for key, value in fields.items() if value is not None}
    if update.get("email"):
        update["email"] = update["email"].strip().lower()
    if not update.get("displayName"):
        full = " ".join(p for p in (update.get("firstName"), update.get("lastName")) if p)
        if full:
            update["displayName"] = full
    update["updatedAt"] = now

    users = get_users_collection()
    await users.update_one(
        {"uid": user.id},
        {"$set": update, "$setOnInsert": {"uid": user.id, "createdAt": now}},
        upsert=True,
    )
    logger.info("[upsert_profile] Saved profile for %s", user.id)
    return await users.find_one({"uid": user.id})
