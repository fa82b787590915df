"""
Shared base models for API schemas.

Request bodies reject unknown fields so client/server mismatches fail
fast with a 422; response bodies ignore extra attributes so they can be
built straight from ORM rows or store records.

Usage:
    class LoginRequest(StrictRequest):
        email: str
        password: str

    class TopicStat(StrictResponse):
        name: str
        accuracy: int
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """Request body: unknown fields are errors, strings are stripped."""

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )


class StrictResponse(BaseModel):
    """Response body: extra attributes are dropped, ORM objects accepted."""

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )


class SuccessResponse(StrictResponse):
    """Acknowledgement for operations without a richer result."""

    success: bool = True
    message: str
