"""
Trip lookups and read views shared by the HTTP routes, the invite lifecycle
and the live hub.
"""

import logging

from bson import ObjectId
from bson.errors import InvalidId

from tripsync.core.errors import ForbiddenError, NotFoundError
from tripsync.core.security import CurrentUser
from tripsync.db.database import (
    get_activities_collection,
    get_expenses_collection,
    get_messages_collection,
    get_trips_collection,
)
from tripsync.views import itinerary as itinerary_view
from tripsync.views.chat import normalize_messages
from tripsync.views.expenses import normalize_expenses
from tripsync.views.members import build_lookup, find_member, is_member, normalize_members
from tripsync.views.timestamps import to_iso

logger = logging.getLogger(__name__)

TRIP_TYPES = ("individual", "group")


def to_object_id(value: str, label: str = "Trip") -> ObjectId:
    """Parse a path id; an id that cannot exist is reported as not found."""
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(f"{label} not found")


async def get_trip_or_404(trip_id: str) -> dict:
    trip = await get_trips_collection().find_one({"_id": to_object_id(trip_id)})
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def require_member(trip: dict, user: CurrentUser) -> None:
    if is_member(trip.get("members"), user.id):
        return
    if trip.get("organizerId") == user.id:
        return
    raise ForbiddenError("You are not a member of this trip")


async def get_member_trip(trip_id: str, user: CurrentUser) -> dict:
    """Load a trip the caller belongs to: 404 when missing, 403 when not a member."""
    trip = await get_trip_or_404(trip_id)
    require_member(trip, user)
    return trip


def member_name(trip: dict, user: CurrentUser) -> str:
    member = find_member(trip.get("members"), user.id)
    if member and member["name"]:
        return member["name"]
    return user.name or (user.email.split("@", 1)[0] if user.email else "Unknown")


def member_query(user_id: str) -> dict:
    """Match trips listing ``user_id`` in any stored member shape."""
    return {
        "$or": [
            {"members.id": user_id},
            {"members.user._id": user_id},
            {"members.user.id": user_id},
            {"members.user": user_id},
            {"members.userId": user_id},
            {"organizerId": user_id},
        ]
    }


def derive_trip_type(trip_type, number_of_persons) -> str:
    text = str(trip_type or "").strip().lower()
    if text in TRIP_TYPES:
        return text
    try:
        return "group" if int(number_of_persons or 1) > 1 else "individual"
    except (TypeError, ValueError):
        return "individual"


# ---------- read views ----------


async def load_itinerary(trip: dict) -> dict:
    trip_id = str(trip["_id"])
    cursor = get_activities_collection().find({"trip_id": trip_id}).sort([("createdAt", 1), ("_id", 1)])
    activities = await cursor.to_list(length=None)
    normalized = itinerary_view.normalize(trip, activities)
    return itinerary_view.complete_days(normalized, trip.get("startDate"), trip.get("endDate"))


async def load_expenses(trip: dict) -> list[dict]:
    trip_id = str(trip["_id"])
    cursor = get_expenses_collection().find({"trip_id": trip_id}).sort([("createdAt", 1), ("_id", 1)])
    records = await cursor.to_list(length=None)
    if not records and isinstance(trip.get("expenses"), list):
        # older trips kept the ledger inside the trip document
        records = trip["expenses"]
    return normalize_expenses(records, build_lookup(trip.get("members")))


async def load_messages(trip: dict) -> list[dict]:
    trip_id = str(trip["_id"])
    records = await get_messages_collection().find({"trip_id": trip_id}).to_list(length=None)
    if not records:
        embedded = trip.get("chatMessages") or trip.get("messages")
        records = embedded if isinstance(embedded, list) else []
    return normalize_messages(records, build_lookup(trip.get("members")))


async def build_trip_view(trip: dict) -> dict:
    """The normalized trip returned by the read routes."""
    return {
        "id": str(trip["_id"]),
        "name": trip.get("name") or "Unnamed Trip",
        "destination": trip.get("destination") or "",
        "startDate": trip.get("startDate"),
        "endDate": trip.get("endDate"),
        "numberOfPersons": trip.get("numberOfPersons") or 1,
        "tripType": derive_trip_type(trip.get("tripType"), trip.get("numberOfPersons")),
        "categories": trip.get("categories") or [],
        "budget": trip.get("budget") or "Medium",
        "organizerId": trip.get("organizerId"),
        "members": normalize_members(trip.get("members")),
        "itinerary": await load_itinerary(trip),
        "expenses": await load_expenses(trip),
        "chatMessages": await load_messages(trip),
        "createdAt": to_iso(trip.get("createdAt"), default_now=False),
    }
