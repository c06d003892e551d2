"""
Request models for trips and their collaborative sub-resources
"""

from typing import Any

from pydantic import ConfigDict, Field

from tripsync.models.common import CamelModel


class CreateTripRequest(CamelModel):
    name: str = Field(..., min_length=1, description="Trip name")
    destination: str = Field(..., min_length=1, description="Where the trip goes")
    start_date: str = Field(..., min_length=1, description="First day, YYYY-MM-DD")
    end_date: str = Field(..., min_length=1, description="Last day, YYYY-MM-DD")
    trip_type: str | None = Field(None, description="individual or group")
    number_of_persons: int | None = Field(None, description="Group size")
    budget: str | None = Field(None, description="Low, Medium or High")
    categories: list[str] = Field(default_factory=list, description="Interest categories")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Paris Trip",
                "destination": "Paris",
                "startDate": "2026-01-10",
                "endDate": "2026-01-12",
                "tripType": "group",
            }
        }
    )


class PatchTripRequest(CamelModel):
    """Fields a member may change. Anything else in the body is ignored."""

    itinerary: dict[str, Any] | None = None
    name: str | None = Field(None, min_length=1)
    start_date: str | None = None
    end_date: str | None = None
    categories: list[str] | None = None
    number_of_persons: int | None = None
    members: list[Any] | None = None


class ActivityCreate(CamelModel):
    day: int = Field(..., ge=1, description="Trip day the activity belongs to")
    title: str = Field(..., min_length=1)
    time: str | None = None
    type: str | None = Field(None, description="Activity category")
    duration: str | None = None
    cost: str | float | None = None
    description: str | None = None
    image: str | None = None
    location: str | None = None


class ReactionRequest(CamelModel):
    type: str = Field(..., description="like or dislike")


class ExpenseCreate(CamelModel):
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    paid_by: str | None = Field(None, description="Display name of who paid; defaults to the caller")
    paid_by_user_id: str | None = None


class MessageCreate(CamelModel):
    message: str = Field(..., min_length=1)
    user_name: str | None = None
