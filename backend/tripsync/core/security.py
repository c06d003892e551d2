"""
Bearer identity tokens.

Tokens are HS256 JWTs issued by the /auth/google exchange. Every trip-scoped
route depends on ``get_current_user``.
"""

from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from tripsync.core.config import JWT_ALGORITHM, JWT_EXPIRATION_HOURS, JWT_SECRET
from tripsync.core.errors import UnauthorizedError

security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


def create_access_token(
    user_id: str,
    email: str | None = None,
    name: str | None = None,
    picture: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "picture": picture,
        "exp": datetime.now(timezone.utc) + (expires_in or timedelta(hours=JWT_EXPIRATION_HOURS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str | None) -> CurrentUser:
    """Decode a bearer token; raises UnauthorizedError when missing, invalid or expired."""
    if not token:
        raise UnauthorizedError("No token provided")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise UnauthorizedError(f"Invalid or expired token: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid or expired token: missing subject")

    return CurrentUser(
        id=str(user_id),
        email=payload.get("email"),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    return verify_token(credentials.credentials if credentials else None)
