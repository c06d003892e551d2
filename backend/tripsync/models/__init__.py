"""
Models package for API request and response schemas
"""

from tripsync.models.common import APIResponse
from tripsync.models.trip import (
    ActivityCreate,
    CreateTripRequest,
    ExpenseCreate,
    MessageCreate,
    PatchTripRequest,
    ReactionRequest,
)
from tripsync.models.user import InviteCreate, UserProfileRequest

__all__ = [
    "APIResponse",
    "ActivityCreate",
    "CreateTripRequest",
    "ExpenseCreate",
    "InviteCreate",
    "MessageCreate",
    "PatchTripRequest",
    "ReactionRequest",
    "UserProfileRequest",
]
