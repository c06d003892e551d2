"""
Common API models
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIResponse(BaseModel):
    """
    Unified API response envelope
    """

    success: bool = Field(default=True, description="False only on the error envelope")
    message: str | None = Field(default=None, description="Human-readable message")
    data: Any | None = Field(default=None, description="Payload data")

    model_config = ConfigDict(
        json_schema_extra={"example": {"success": True, "data": {"items": []}}}
    )


class CamelModel(BaseModel):
    """Request body with camelCase wire names and snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
