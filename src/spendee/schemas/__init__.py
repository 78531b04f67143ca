"""Pydantic schemas for API requests/responses."""

from spendee.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginUrlResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionResponse,
    TokenResponse,
)
from spendee.schemas.common import ErrorResponse, FieldError, SuccessResponse

__all__ = [
    "EmailRequest",
    "ErrorResponse",
    "FieldError",
    "LoginRequest",
    "LoginUrlResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "SessionResponse",
    "SuccessResponse",
    "TokenResponse",
]
