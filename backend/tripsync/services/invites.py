"""
Invite Lifecycle

    pending -> sent | recorded_not_sent | failed
    pending | sent | recorded_not_sent -> accepted | declined

``failed`` is inert: nothing moves an invite out of it. Every transition is a
conditional update on the current status, so two racing requests cannot both
win.
"""

import logging
from enum import Enum

from tripsync.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from tripsync.core.security import CurrentUser
from tripsync.db.database import get_invites_collection, get_trips_collection
from tripsync.services.mailer import MailDeliveryError, Mailer
from tripsync.services.profiles import load_profile, resolve_email
from tripsync.services.trips import get_trip_or_404, require_member, to_object_id
from tripsync.views.members import is_member, member_display_name
from tripsync.views.timestamps import now_utc, to_iso

logger = logging.getLogger(__name__)


class InviteStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    RECORDED_NOT_SENT = "recorded_not_sent"
    FAILED = "failed"
    ACCEPTED = "accepted"
    DECLINED = "declined"


ACTIONABLE_STATUSES = (InviteStatus.PENDING, InviteStatus.SENT, InviteStatus.RECORDED_NOT_SENT)

_TRANSITIONS: dict[InviteStatus, set[InviteStatus]] = {
    InviteStatus.PENDING: {
        InviteStatus.SENT,
        InviteStatus.RECORDED_NOT_SENT,
        InviteStatus.FAILED,
        InviteStatus.ACCEPTED,
        InviteStatus.DECLINED,
    },
    InviteStatus.SENT: {InviteStatus.ACCEPTED, InviteStatus.DECLINED},
    InviteStatus.RECORDED_NOT_SENT: {InviteStatus.ACCEPTED, InviteStatus.DECLINED},
}

_ACTIONABLE_VALUES = [s.value for s in ACTIONABLE_STATUSES]


def can_transition(current: str, target: str) -> bool:
    try:
        return InviteStatus(target) in _TRANSITIONS.get(InviteStatus(current), set())
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    text = (email or "").strip().lower()
    if "@" not in text or text.startswith("@") or text.endswith("@"):
        raise BadRequestError("Invalid field 'email': a valid email address is required")
    return text


def _inviter_name(profile: dict | None, supplied: str | None) -> str:
    if profile:
        name = member_display_name(profile, None)
        if name and name != "Unknown":
            return name
    if supplied and supplied.strip():
        return supplied.strip()
    return "Organizer"


async def _transition(invite_id, current: InviteStatus, target: InviteStatus, fields: dict) -> bool:
    """Move an invite from ``current`` to ``target``; False when another writer got there first."""
    if not can_transition(current.value, target.value):
        raise ConflictError(f"Invite cannot move from {current.value} to {target.value}")
    result = await get_invites_collection().update_one(
        {"_id": invite_id, "status": current.value},
        {"$set": {"status": target.value, **fields}},
    )
    return result.matched_count == 1


async def create_invite(
    trip_id: str,
    email: str,
    caller: CurrentUser,
    mailer: Mailer,
    inviter_name: str | None = None,
) -> dict:
    """
    Record an invite and try to deliver it.

    The invite is always persisted. Delivery decides the final status:
    ``sent``, ``recorded_not_sent`` when no transport is configured, or
    ``failed`` (with the error) when the transport rejects or times out.
    """
    address = normalize_email(email)
    trip = await get_trip_or_404(trip_id)
    require_member(trip, caller)

    name = _inviter_name(await load_profile(caller.id), inviter_name or caller.name)
    doc = {
        "tripId": str(trip["_id"]),
        "email": address,
        "inviterName": name,
        "invitedById": caller.id,
        "status": InviteStatus.PENDING.value,
        "createdAt": now_utc(),
    }
    result = await get_invites_collection().insert_one(doc)
    invite_id = result.inserted_id
    logger.info("[create_invite] Recorded invite %s for %s on trip %s", invite_id, address, doc["tripId"])

    outcome = {"inviteId": str(invite_id), "email": address, "status": InviteStatus.PENDING.value}

    if not mailer.configured:
        await _transition(invite_id, InviteStatus.PENDING, InviteStatus.RECORDED_NOT_SENT, {})
        logger.info("[create_invite] Mail transport not configured, invite %s recorded only", invite_id)
        outcome["status"] = InviteStatus.RECORDED_NOT_SENT.value
        return outcome

    try:
        mailer.verify()
        await mailer.send_invite(address, trip.get("name") or "a trip", name, str(invite_id))
    except MailDeliveryError as e:
        logger.error("[create_invite] Delivery failed for invite %s: %s", invite_id, e.message)
        await _transition(
            invite_id, InviteStatus.PENDING, InviteStatus.FAILED, {"error": e.message, "failedAt": now_utc()}
        )
        outcome.update(status=InviteStatus.FAILED.value, error=e.message)
        return outcome

    await _transition(invite_id, InviteStatus.PENDING, InviteStatus.SENT, {"sentAt": now_utc()})
    outcome["status"] = InviteStatus.SENT.value
    return outcome


def _status(invite: dict) -> InviteStatus:
    try:
        return InviteStatus(invite.get("status") or InviteStatus.PENDING.value)
    except ValueError:
        raise ConflictError(f"Invite has an unknown status: {invite.get('status')}")


async def _get_addressed_invite(invite_id: str, caller: CurrentUser) -> dict:
    invite = await get_invites_collection().find_one({"_id": to_object_id(invite_id, "Invite")})
    if not invite:
        raise NotFoundError("Invite not found")
    email = await resolve_email(caller)
    if not email or email != str(invite.get("email") or "").strip().lower():
        raise ForbiddenError("This invite is addressed to a different email")
    return invite


async def _add_member(trip_id: str, caller: CurrentUser, email: str) -> bool:
    """Append the caller as a confirmed member unless their id is already present."""
    trips = get_trips_collection()
    trip_oid = to_object_id(trip_id)
    trip = await trips.find_one({"_id": trip_oid})
    if not trip:
        raise NotFoundError("Trip not found")
    if is_member(trip.get("members"), caller.id):
        return False

    profile = await load_profile(caller.id) or {"displayName": caller.name}
    member = {
        "id": caller.id,
        "name": member_display_name(profile, email),
        "role": "Member",
        "status": "Confirmed",
    }
    if caller.picture:
        member["avatar"] = caller.picture
    result = await trips.update_one(
        {"_id": trip_oid, "members.id": {"$ne": caller.id}},
        {"$push": {"members": member}, "$inc": {"revision": 1}, "$set": {"updatedAt": now_utc()}},
    )
    return result.modified_count == 1


async def accept_invite(invite_id: str, caller: CurrentUser) -> dict:
    """
    Accept an invite addressed to the caller and join the trip.

    Accepting an already accepted invite succeeds again without adding a
    second member entry.
    """
    invite = await _get_addressed_invite(invite_id, caller)
    status = _status(invite)
    email = invite["email"]

    if status == InviteStatus.ACCEPTED:
        await _add_member(invite["tripId"], caller, email)
        return {"tripId": invite["tripId"], "status": status.value, "alreadyAccepted": True}
    if status not in ACTIONABLE_STATUSES:
        raise ConflictError(f"Invite is {status.value} and can no longer be accepted")

    # status first: a lost race must leave the member list untouched
    moved = await _transition(
        invite["_id"], status, InviteStatus.ACCEPTED, {"acceptedAt": now_utc(), "acceptedBy": caller.id}
    )
    if not moved:
        current = await get_invites_collection().find_one({"_id": invite["_id"]})
        if not current or current.get("status") != InviteStatus.ACCEPTED.value:
            raise ConflictError("Invite changed while it was being accepted")

    added = await _add_member(invite["tripId"], caller, email)
    logger.info("[accept_invite] %s joined trip %s (member added: %s)", caller.id, invite["tripId"], added)
    return {"tripId": invite["tripId"], "status": InviteStatus.ACCEPTED.value, "alreadyAccepted": False}


async def decline_invite(invite_id: str, caller: CurrentUser) -> dict:
    invite = await _get_addressed_invite(invite_id, caller)
    status = _status(invite)

    if status == InviteStatus.DECLINED:
        return {"tripId": invite["tripId"], "status": status.value}
    if status not in ACTIONABLE_STATUSES:
        raise ConflictError(f"Invite is {status.value} and can no longer be declined")

    moved = await _transition(invite["_id"], status, InviteStatus.DECLINED, {"declinedAt": now_utc()})
    if not moved:
        current = await get_invites_collection().find_one({"_id": invite["_id"]})
        if not current or current.get("status") != InviteStatus.DECLINED.value:
            raise ConflictError("Invite changed while it was being declined")

    logger.info("[decline_invite] %s declined invite %s", caller.id, invite_id)
    return {"tripId": invite["tripId"], "status": InviteStatus.DECLINED.value}


async def _trip_summary(trip_id: str) -> tuple[str, str]:
    try:
        trip = await get_trips_collection().find_one({"_id": to_object_id(trip_id)})
    except NotFoundError:
        trip = None
    if not trip:
        return "Unnamed Trip", "Unknown Destination"
    return trip.get("name") or "Unnamed Trip", trip.get("destination") or "Unknown Destination"


async def list_invites(caller: CurrentUser, trip_id: str | None = None) -> list[dict]:
    """Actionable invites addressed to the caller, oldest first."""
    email = await resolve_email(caller)
    if not email:
        return []

    query = {"email": email, "status": {"$in": _ACTIONABLE_VALUES}}
    if trip_id:
        query["tripId"] = trip_id
    records = await get_invites_collection().find(query).sort("createdAt", 1).to_list(length=None)

    invites = []
    for record in records:
        trip_name, destination = await _trip_summary(record.get("tripId"))
        invites.append(
            {
                "id": str(record["_id"]),
                "tripId": record.get("tripId"),
                "tripName": trip_name,
                "destination": destination,
                "email": record.get("email"),
                "inviterName": record.get("inviterName") or "Organizer",
                "status": record.get("status"),
                "createdAt": to_iso(record.get("createdAt"), default_now=False),
            }
        )
    return invites
