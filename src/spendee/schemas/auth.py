"""Request and response bodies for the account and session endpoints.

Presence of required fields is checked by the endpoints so each can answer with
its own message; the rules here only apply to values that were supplied.
"""

import re
from collections.abc import Callable

from pydantic import BaseModel, EmailStr, field_validator

from spendee.models.user import UserRead
from spendee.services.passwords import MAX_PASSWORD_BYTES

# (rule, message) pairs checked in order; the first failing rule is reported
PASSWORD_RULES: list[tuple[Callable[[str], bool], str]] = [
    (lambda v: len(v) >= 8, "Password must be at least 8 characters"),
    (lambda v: len(v.encode("utf-8")) <= MAX_PASSWORD_BYTES, "Password is too long"),
    (lambda v: re.search(r"[a-z]", v) is not None, "Password must contain a lowercase letter"),
    (lambda v: re.search(r"[A-Z]", v) is not None, "Password must contain an uppercase letter"),
    (lambda v: re.search(r"[0-9]", v) is not None, "Password must contain a number"),
]

NAME_MIN_LENGTH = 2


def check_password(value: str | None) -> str | None:
    """Apply PASSWORD_RULES to a supplied password."""
    if value is None:
        return None
    for rule, message in PASSWORD_RULES:
        if not rule(value):
            raise ValueError(message)
    return value


def blank_to_none(value):
    """Treat empty and whitespace-only strings as missing."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def normalize_email(value):
    value = blank_to_none(value)
    if isinstance(value, str):
        return value.strip().lower()
    return value


class RegisterRequest(BaseModel):
    """Request body for registration."""

    name: str | None = None
    email: EmailStr | None = None
    password: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v):
        v = blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        if v is not None and len(v) < NAME_MIN_LENGTH:
            raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v):
        return normalize_email(v)

    @field_validator("password", mode="before")
    @classmethod
    def clean_password(cls, v):
        return blank_to_none(v)

    @field_validator("password")
    @classmethod
    def check_password_rules(cls, v: str | None) -> str | None:
        return check_password(v)


class EmailRequest(BaseModel):
    """Request body carrying only an email address."""

    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v):
        return normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """Request body for completing a password reset."""

    token: str | None = None
    password: str | None = None

    @field_validator("token", "password", mode="before")
    @classmethod
    def clean_blank(cls, v):
        return blank_to_none(v)

    @field_validator("password")
    @classmethod
    def check_password_rules(cls, v: str | None) -> str | None:
        return check_password(v)


class LoginRequest(BaseModel):
    """Request body for credential login."""

    email: str = ""
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v):
        return normalize_email(v) or ""


class RegisterResponse(BaseModel):
    """Response for a successful registration."""

    user: UserRead


class SessionResponse(BaseModel):
    """Current session. ``access_token`` is set whenever a new token was issued."""

    user: UserRead
    created_at: int
    expires_at: int
    access_token: str | None = None
    token_type: str = "bearer"


class TokenResponse(SessionResponse):
    """Response for login and refresh."""

    access_token: str


class LoginUrlResponse(BaseModel):
    """Provider consent page to send the browser to."""

    url: str
