"""
Invite Router
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from tripsync.core.errors import UpstreamError
from tripsync.core.security import CurrentUser, get_current_user
from tripsync.models.common import APIResponse
from tripsync.models.user import InviteCreate
from tripsync.services.invites import InviteStatus, accept_invite, create_invite, decline_invite, list_invites
from tripsync.services.live_hub import hub
from tripsync.services.mailer import Mailer, get_mailer

router = APIRouter(prefix="/api/invites", tags=["Invites"])

_CREATED_MESSAGES = {
    InviteStatus.SENT.value: "Invitation sent to {email}",
    InviteStatus.RECORDED_NOT_SENT.value: "Invitation recorded for {email}; email delivery is not configured",
}


@router.get("", response_model=APIResponse, response_model_exclude_none=True)
async def get_invites(
    trip_id: str | None = Query(None, alias="tripId"),
    user: CurrentUser = Depends(get_current_user),
):
    return APIResponse(data=await list_invites(user, trip_id))


@router.post("/{trip_id}/invite", status_code=201)
async def invite_to_trip(
    trip_id: str,
    body: InviteCreate,
    user: CurrentUser = Depends(get_current_user),
    mailer: Mailer = Depends(get_mailer),
):
    outcome = await create_invite(trip_id, body.email, user, mailer, inviter_name=body.inviter_name)
    if outcome["status"] == InviteStatus.FAILED.value:
        raise UpstreamError(
            f"Invite {outcome['inviteId']} was recorded but email delivery failed: {outcome['error']}"
        )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "inviteId": outcome["inviteId"],
            "email": outcome["email"],
            "status": outcome["status"],
            "message": _CREATED_MESSAGES[outcome["status"]].format(email=outcome["email"]),
        },
    )


@router.post("/{invite_id}/accept", response_model=APIResponse, response_model_exclude_none=True)
async def accept(invite_id: str, user: CurrentUser = Depends(get_current_user)):
    result = await accept_invite(invite_id, user)
    if result["alreadyAccepted"]:
        return APIResponse(message="Invite already accepted", data={"tripId": result["tripId"]})
    await hub.publish(result["tripId"], "members")
    return APIResponse(message="Invite accepted", data={"tripId": result["tripId"]})


@router.post("/{invite_id}/decline", response_model=APIResponse, response_model_exclude_none=True)
async def decline(invite_id: str, user: CurrentUser = Depends(get_current_user)):
    result = await decline_invite(invite_id, user)
    return APIResponse(message="Invite declined", data={"tripId": result["tripId"]})
