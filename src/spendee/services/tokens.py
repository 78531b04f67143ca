"""Single-use email tokens for address verification and password resets.

A user has at most one live token per purpose: issuing a new one deletes the
previous one. Tokens are checked for expiry only when they are redeemed, and a
redeemed token is deleted in the same unit of work as the change it authorizes.
Callers own the transaction and must commit after issuing or consuming.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from secrets import token_hex

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.config import settings
from spendee.constants import TOKEN_BYTES
from spendee.errors import ExpiredError, NotFoundError
from spendee.models import PasswordResetToken, User, VerificationToken, as_utc, utcnow
from spendee.models.verification_token import EmailTokenBase

logger = logging.getLogger(__name__)


class TokenPurpose(str, Enum):
    """What a token authorizes."""

    VERIFY_EMAIL = "verify_email"
    RESET_PASSWORD = "reset_password"


class TokenNotFoundError(NotFoundError):
    """No token with that value exists (never issued, superseded or already used)."""

    kind = "not_found"
    default_message = "Invalid or expired token"


class TokenExpiredError(ExpiredError):
    """The token exists but its expiry has passed."""

    kind = "expired"
    default_message = "Invalid or expired token"


_TOKEN_MODELS: dict[TokenPurpose, type[EmailTokenBase]] = {
    TokenPurpose.VERIFY_EMAIL: VerificationToken,
    TokenPurpose.RESET_PASSWORD: PasswordResetToken,
}


def token_model(purpose: TokenPurpose) -> type[EmailTokenBase]:
    """Table backing a token purpose."""
    return _TOKEN_MODELS[purpose]


def token_ttl(purpose: TokenPurpose) -> timedelta:
    """Lifetime of a freshly issued token."""
    if purpose is TokenPurpose.VERIFY_EMAIL:
        return timedelta(seconds=settings.verify_email_ttl_seconds)
    return timedelta(seconds=settings.reset_password_ttl_seconds)


async def issue_token(
    session: AsyncSession,
    user_id: str,
    purpose: TokenPurpose,
    now: datetime | None = None,
) -> str:
    """Create a new token for a user, replacing any outstanding one of the same purpose."""
    now = now or utcnow()
    model = token_model(purpose)

    await session.execute(delete(model).where(model.user_id == user_id))  # type: ignore[arg-type]

    token = token_hex(TOKEN_BYTES)
    session.add(model(token=token, user_id=user_id, expires=now + token_ttl(purpose)))
    await session.flush()

    logger.debug(f"Issued {purpose.value} token for user {user_id}")
    return token


async def get_token(
    session: AsyncSession, token: str, purpose: TokenPurpose
) -> EmailTokenBase | None:
    """Look up a token row by its value."""
    model = token_model(purpose)
    stmt = select(model).where(model.token == token)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def consume_token(
    session: AsyncSession,
    token: str,
    purpose: TokenPurpose,
    password_hash: str | None = None,
    now: datetime | None = None,
) -> str:
    """Redeem a token and apply the change it authorizes.

    For ``VERIFY_EMAIL`` the user's ``email_verified`` is set to ``now``; for
    ``RESET_PASSWORD`` the password hash is replaced with ``password_hash``.

    Returns:
        The id of the user the token belonged to.

    Raises:
        TokenNotFoundError: no such token, or it was already redeemed.
        TokenExpiredError: the token has expired. Nothing is changed.
    """
    if purpose is TokenPurpose.RESET_PASSWORD and not password_hash:
        raise ValueError("password_hash is required to redeem a password reset token")

    now = now or utcnow()
    record = await get_token(session, token, purpose)

    if record is None:
        raise TokenNotFoundError()

    if now >= as_utc(record.expires):
        raise TokenExpiredError()

    user_id = record.user_id
    user = await session.get(User, user_id)
    if user is None:
        raise TokenNotFoundError()

    # Delete by value and require that this call removed the row, so two concurrent
    # redemptions cannot both succeed.
    model = token_model(purpose)
    result = await session.execute(delete(model).where(model.token == token))  # type: ignore[arg-type]
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise TokenNotFoundError()

    if purpose is TokenPurpose.VERIFY_EMAIL:
        user.email_verified = now
    else:
        user.password = password_hash

    session.add(user)
    await session.flush()

    logger.info(f"Redeemed {purpose.value} token for user {user_id}")
    return user_id
