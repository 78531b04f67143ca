"""Federated sign-in: provider accounts linked to users, and pending OAuth states."""

from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from spendee.models.base import TimestampMixin, generate_nanoid


class Account(TimestampMixin, SQLModel, table=True):
    """A user's identity at an external provider (GitHub, Google)."""

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_accounts_provider_account"),
    )

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    provider: str = Field(max_length=32)
    provider_account_id: str = Field(max_length=255, description="Subject id at the provider")


class OAuthState(SQLModel, table=True):
    """Anti-forgery state handed to the provider and checked on the callback."""

    __tablename__ = "oauth_states"

    state: str = Field(primary_key=True, max_length=255)
    provider: str = Field(max_length=32)
    expires: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="State expiration time",
    )
