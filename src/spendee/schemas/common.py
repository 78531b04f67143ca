"""Common schemas used across the API."""

from pydantic import BaseModel


class FieldError(BaseModel):
    """One failed validation rule."""

    path: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    errors: list[FieldError] | None = None


class SuccessResponse(BaseModel):
    """Standard success response."""

    success: bool = True
