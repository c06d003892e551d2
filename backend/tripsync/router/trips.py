"""
Trip Router
Handles trip creation, the shared itinerary, reactions, expenses and chat
"""

import logging

from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from tripsync.core.config import REACTION_WRITE_RETRIES
from tripsync.core.errors import BadRequestError, ConflictError, NotFoundError
from tripsync.core.security import CurrentUser, get_current_user
from tripsync.db.database import (
    get_activities_collection,
    get_expenses_collection,
    get_messages_collection,
    get_trips_collection,
)
from tripsync.models.common import APIResponse
from tripsync.models.trip import (
    ActivityCreate,
    CreateTripRequest,
    ExpenseCreate,
    MessageCreate,
    PatchTripRequest,
    ReactionRequest,
)
from tripsync.services.live_hub import hub
from tripsync.services.profiles import resolve_profile
from tripsync.services.trips import (
    build_trip_view,
    derive_trip_type,
    get_member_trip,
    load_expenses,
    load_messages,
    member_name,
    member_query,
    to_object_id,
)
from tripsync.views.itinerary import coerce_day, parse_date
from tripsync.views.members import UNKNOWN_NAME, find_member, member_display_name, validate_members_for_write
from tripsync.views.reactions import apply_reaction, summarize
from tripsync.views.timestamps import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trips", tags=["Trips"])


def _validate_range(start: str, end: str) -> tuple[str, str]:
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None:
        raise BadRequestError("Invalid field 'startDate': expected a YYYY-MM-DD date")
    if end_date is None:
        raise BadRequestError("Invalid field 'endDate': expected a YYYY-MM-DD date")
    if end_date < start_date:
        raise BadRequestError("Invalid field 'endDate': must not be before startDate")
    return start_date.isoformat(), end_date.isoformat()


async def _caller_name(trip: dict, user: CurrentUser) -> str:
    member = find_member(trip.get("members"), user.id)
    if member and member["name"] and member["name"] != UNKNOWN_NAME:
        return member["name"]
    return member_display_name(await resolve_profile(user), user.email)


# ---------- trips ----------


@router.post("", status_code=201)
async def create_trip(body: CreateTripRequest, user: CurrentUser = Depends(get_current_user)):
    start_date, end_date = _validate_range(body.start_date, body.end_date)
    trip_type = derive_trip_type(body.trip_type, body.number_of_persons)
    if trip_type == "group":
        persons = body.number_of_persons if (body.number_of_persons or 0) > 0 else 2
    else:
        persons = 1

    organizer = {
        "id": user.id,
        "name": member_display_name(await resolve_profile(user), user.email),
        "role": "Organizer",
        "status": "Confirmed",
    }
    if user.picture:
        organizer["avatar"] = user.picture

    now = now_utc()
    doc = {
        "name": body.name,
        "destination": body.destination,
        "startDate": start_date,
        "endDate": end_date,
        "tripType": trip_type,
        "numberOfPersons": persons,
        "budget": body.budget or "Medium",
        "categories": body.categories,
        "organizerId": user.id,
        "members": [organizer],
        "revision": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await get_trips_collection().insert_one(doc)
    logger.info("[create_trip] %s created trip %s (%s)", user.id, result.inserted_id, body.name)
    return {"success": True, "tripId": str(result.inserted_id)}


@router.get("", response_model=APIResponse, response_model_exclude_none=True)
async def list_trips(user: CurrentUser = Depends(get_current_user)):
    cursor = get_trips_collection().find(member_query(user.id)).sort("createdAt", -1)
    trips = await cursor.to_list(length=None)
    return APIResponse(data=[await build_trip_view(trip) for trip in trips])


@router.get("/{trip_id}", response_model=APIResponse, response_model_exclude_none=True)
async def get_trip(trip_id: str, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    return APIResponse(data=await build_trip_view(trip))


@router.patch("/{trip_id}", response_model=APIResponse, response_model_exclude_none=True)
async def update_trip(trip_id: str, body: PatchTripRequest, user: CurrentUser = Depends(get_current_user)):
    updates = body.model_dump(by_alias=True, exclude_unset=True)
    if not updates:
        raise BadRequestError(
            "No updatable fields provided (itinerary, name, startDate, endDate, categories, numberOfPersons, members)"
        )
    for field, value in updates.items():
        if value is None:
            raise BadRequestError(f"Invalid field '{field}': must not be null")

    trip = await get_member_trip(trip_id, user)

    if "startDate" in updates or "endDate" in updates:
        updates["startDate"], updates["endDate"] = _validate_range(
            updates.get("startDate", trip.get("startDate")), updates.get("endDate", trip.get("endDate"))
        )
    if "numberOfPersons" in updates and updates["numberOfPersons"] < 1:
        raise BadRequestError("Invalid field 'numberOfPersons': must be at least 1")
    if "itinerary" in updates and not isinstance(updates["itinerary"].get("days"), list):
        raise BadRequestError("Invalid field 'itinerary.days': expected a list of days")
    if "members" in updates:
        updates["members"] = validate_members_for_write(updates["members"])

    updates["updatedAt"] = now_utc()
    await get_trips_collection().update_one({"_id": trip["_id"]}, {"$set": updates, "$inc": {"revision": 1}})
    logger.info("[update_trip] %s updated %s on trip %s", user.id, sorted(updates), trip_id)

    kinds = []
    if {"itinerary", "startDate", "endDate"} & updates.keys():
        kinds.append("itinerary")
    if "members" in updates:
        kinds.append("members")
    await hub.publish(trip_id, *kinds)
    return APIResponse(message="Trip updated")


# ---------- itinerary ----------


@router.post("/{trip_id}/activities", status_code=201)
async def add_activity(trip_id: str, body: ActivityCreate, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    activities = get_activities_collection()
    title_key = body.title.lower()

    if await activities.find_one({"trip_id": trip_id, "day": body.day, "title_key": title_key}):
        raise ConflictError(f"Activity '{body.title}' already exists on day {body.day}")

    doc = body.model_dump(exclude_none=True)
    doc.update(
        {
            "trip_id": trip_id,
            "title_key": title_key,
            "proposedBy": await _caller_name(trip, user),
            "reactions": [],
            "reactions_version": 0,
            "createdAt": now_utc(),
        }
    )
    try:
        result = await activities.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError(f"Activity '{body.title}' already exists on day {body.day}")

    logger.info("[add_activity] Added '%s' to day %d of trip %s", body.title, body.day, trip_id)
    await hub.publish(trip_id, "itinerary")
    return {"success": True, "activityId": str(result.inserted_id)}


@router.post(
    "/{trip_id}/activities/{activity_id}/reactions", response_model=APIResponse, response_model_exclude_none=True
)
async def react_to_activity(
    trip_id: str, activity_id: str, body: ReactionRequest, user: CurrentUser = Depends(get_current_user)
):
    trip = await get_member_trip(trip_id, user)
    name = await _caller_name(trip, user)
    activities = get_activities_collection()
    activity_oid = to_object_id(activity_id, "Activity")

    for attempt in range(REACTION_WRITE_RETRIES):
        activity = await activities.find_one({"_id": activity_oid, "trip_id": trip_id})
        if not activity:
            raise NotFoundError("Activity not found")

        version = activity.get("reactions_version")
        reactions = apply_reaction(activity.get("reactions"), user.id, name, body.type)
        result = await activities.update_one(
            {"_id": activity_oid, "reactions_version": version},
            {"$set": {"reactions": reactions, "reactions_version": (version or 0) + 1}},
        )
        if result.matched_count == 1:
            await hub.publish(trip_id, "itinerary")
            return APIResponse(data={"reactions": reactions, "summary": summarize(reactions)})
        logger.info("[react_to_activity] Version conflict on %s, retry %d", activity_id, attempt + 1)

    raise ConflictError("Reactions changed too often to apply this update, try again")


@router.post(
    "/{trip_id}/hotels/{day}/{index}/reactions", response_model=APIResponse, response_model_exclude_none=True
)
async def react_to_hotel(
    trip_id: str, day: int, index: int, body: ReactionRequest, user: CurrentUser = Depends(get_current_user)
):
    trips = get_trips_collection()

    for attempt in range(REACTION_WRITE_RETRIES):
        trip = await get_member_trip(trip_id, user)
        name = await _caller_name(trip, user)
        itinerary = trip.get("itinerary") if isinstance(trip.get("itinerary"), dict) else {}
        days = [dict(d) for d in itinerary.get("days") or [] if isinstance(d, dict)]

        target = next((d for d in days if coerce_day(d.get("day")) == day), None)
        hotels = list(target.get("hotels") or []) if target else []
        if not 0 <= index < len(hotels) or not isinstance(hotels[index], dict):
            raise NotFoundError(f"Hotel {index} not found on day {day}")

        reactions = apply_reaction(hotels[index].get("reactions"), user.id, name, body.type)
        hotels[index] = {**hotels[index], "reactions": reactions}
        target["hotels"] = hotels

        result = await trips.update_one(
            {"_id": trip["_id"], "revision": trip.get("revision")},
            {"$set": {"itinerary": {**itinerary, "days": days}}, "$inc": {"revision": 1}},
        )
        if result.matched_count == 1:
            await hub.publish(trip_id, "itinerary")
            return APIResponse(data={"reactions": reactions, "summary": summarize(reactions)})
        logger.info("[react_to_hotel] Revision conflict on trip %s, retry %d", trip_id, attempt + 1)

    raise ConflictError("Reactions changed too often to apply this update, try again")


# ---------- expenses ----------


@router.post("/{trip_id}/expenses", status_code=201)
async def add_expense(trip_id: str, body: ExpenseCreate, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    doc = {
        "trip_id": trip_id,
        "description": body.description,
        "amount": body.amount,
        "paidBy": body.paid_by or member_name(trip, user),
        "paidByUserId": body.paid_by_user_id or (None if body.paid_by else user.id),
        "createdAt": now_utc(),
    }
    result = await get_expenses_collection().insert_one(doc)
    logger.info("[add_expense] %s added %.2f to trip %s", user.id, body.amount, trip_id)
    await hub.publish(trip_id, "expenses")
    return {"success": True, "expenseId": str(result.inserted_id)}


@router.get("/{trip_id}/expenses", response_model=APIResponse, response_model_exclude_none=True)
async def list_expenses(trip_id: str, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    return APIResponse(data=await load_expenses(trip))


# ---------- chat ----------


@router.post("/{trip_id}/messages", status_code=201)
async def add_message(trip_id: str, body: MessageCreate, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    doc = {
        "trip_id": trip_id,
        "userId": user.id,
        "userName": body.user_name or await _caller_name(trip, user),
        "message": body.message,
        "timestamp": now_utc(),
    }
    result = await get_messages_collection().insert_one(doc)
    await hub.publish(trip_id, "messages")
    return {"success": True, "messageId": str(result.inserted_id)}


@router.get("/{trip_id}/messages", response_model=APIResponse, response_model_exclude_none=True)
async def list_messages(trip_id: str, user: CurrentUser = Depends(get_current_user)):
    trip = await get_member_trip(trip_id, user)
    return APIResponse(data=await load_messages(trip))
