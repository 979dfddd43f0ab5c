"""Common schemas used across the API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case names are accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    """Schema for simple message response."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error body for API errors.

    Attributes:
        detail: Human-readable, user-safe message
        code: Machine-readable error code (e.g. 'INVALID_CREDENTIALS')
        errors: Per-field messages for request validation failures
    """

    detail: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    errors: list[str] | None = Field(None, description="Validation errors")
