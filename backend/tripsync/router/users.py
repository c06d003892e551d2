"""
User Profile Router
"""

from fastapi import APIRouter, Depends

from tripsync.core.security import CurrentUser, get_current_user
from tripsync.models.common import APIResponse
from tripsync.models.user import UserProfileRequest
from tripsync.services.profiles import resolve_profile, serialize_profile, upsert_profile

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/profile", response_model=APIResponse, response_model_exclude_none=True)
async def save_profile(body: UserProfileRequest, user: CurrentUser = Depends(get_current_user)):
    stored = await upsert_profile(user, body.model_dump(by_alias=True))
    return APIResponse(message="Profile saved", data=serialize_profile(stored))


@router.get("/profile", response_model=APIResponse, response_model_exclude_none=True)
async def get_profile(user: CurrentUser = Depends(get_current_user)):
    return APIResponse(data=await resolve_profile(user))
