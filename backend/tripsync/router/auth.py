import logging

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tripsync.core.config import (
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
)
from tripsync.core.errors import BadRequestError, UpstreamError
from tripsync.core.security import CurrentUser, create_access_token, get_current_user
from tripsync.db.database import get_users_collection
from tripsync.views.timestamps import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


# Request/Response Models
class GoogleTokenRequest(BaseModel):
    code: str


class UserInfo(BaseModel):
    id: str
    email: str
    name: str
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None
    email_verified: bool = False


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo


@router.post("/google", response_model=AuthResponse)
async def google_auth(token_request: GoogleTokenRequest):
    """
    Exchange Google authorization code for access token and user info

    Flow:
    1. Exchange the authorization code for a Google access token
    2. Fetch user information from Google
    3. Create or merge the user's profile in the users collection
    4. Return our own JWT and the user info
    """
    try:
        async with httpx.AsyncClient() as client:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": token_request.code,
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
            if token_response.status_code != 200:
                raise BadRequestError(f"Failed to exchange code: {token_response.text}")

            access_token = token_response.json().get("access_token")
            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if userinfo_response.status_code != 200:
                raise BadRequestError("Failed to fetch user info from Google")

            google_user = userinfo_response.json()
    except httpx.HTTPError as e:
        raise UpstreamError(f"Google sign-in is unavailable: {e}")

    user_info = UserInfo(
        id=google_user["id"],
        email=google_user["email"],
        name=google_user.get("name", ""),
        given_name=google_user.get("given_name"),
        family_name=google_user.get("family_name"),
        picture=google_user.get("picture"),
        email_verified=google_user.get("verified_email", False),
    )

    now = now_utc()
    profile = {
        "email": user_info.email.lower(),
        "displayName": user_info.name or None,
        "firstName": user_info.given_name,
        "lastName": user_info.family_name,
        "picture": user_info.picture,
        "lastLogin": now,
        "updatedAt": now,
    }
    result = await get_users_collection().update_one(
        {"uid": user_info.id},
        {
            "$set": {k: v for k, v in profile.items() if v is not None},
            "$setOnInsert": {"uid": user_info.id, "createdAt": now},
        },
        upsert=True,
    )
    logger.info(
        "[google_auth] %s user %s (%s)",
        "Created" if result.upserted_id else "Updated",
        user_info.id,
        user_info.email,
    )

    jwt_token = create_access_token(
        user_info.id, email=user_info.email, name=user_info.name, picture=user_info.picture
    )
    return AuthResponse(access_token=jwt_token, user=user_info)


@router.get("/me", response_model=CurrentUser)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    """
    Get current authenticated user from JWT token

    Frontend calls this on app load to check whether the stored token is still valid.
    """
    return user
