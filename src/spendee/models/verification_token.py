"""Single-use email tokens for address verification and password resets."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class EmailTokenBase(SQLModel):
    """Columns shared by every email token table."""

    token: str = Field(primary_key=True, max_length=255, description="Random opaque token")
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    expires: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Token expiration time",
    )


class VerificationToken(EmailTokenBase, table=True):
    """Token proving control of an email address after registration."""

    __tablename__ = "verification_tokens"


class PasswordResetToken(EmailTokenBase, table=True):
    """Token authorizing a single password change."""

    __tablename__ = "password_reset_tokens"
