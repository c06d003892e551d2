"""
Profile and invite request models
"""

from pydantic import ConfigDict, Field

from tripsync.models.common import CamelModel


class UserProfileRequest(CamelModel):
    """
    Profile fields stored in the users collection, keyed by the token subject
    """

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    display_name: str | None = None
    mobile: str | None = None
    picture: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "firstName": "Jane",
                "lastName": "Doe",
                "email": "jane@example.com",
                "mobile": "+1 555 0100",
            }
        }
    )


class InviteCreate(CamelModel):
    email: str = Field(..., min_length=1, description="Address to invite")
    inviter_name: str | None = Field(None, description="Used when the inviter has no stored profile")
