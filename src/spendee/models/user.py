"""User model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from spendee.models.base import TimestampMixin, generate_nanoid


class User(TimestampMixin, SQLModel, table=True):
    """User account model."""

    __tablename__ = "users"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=2048)
    # bcrypt hash; NULL for accounts created without a password
    password: str | None = Field(default=None, max_length=255)
    email_verified: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="When the user proved control of their email address",
    )


class UserRead(SQLModel):
    """Schema for reading a user. Never carries the password hash."""

    id: str
    email: str
    name: str | None
    image: str | None = None
    email_verified: datetime | None
