"""Credential checks and JWT session management.

Sessions are stateless: the signed token carries the user id and the session's
``created_at`` (unix seconds). A session expires ``session_max_age_seconds``
after ``created_at``; renewing it moves ``created_at`` forward.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.config import settings
from spendee.models import User, utcnow
from spendee.services.passwords import verify_password

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication error."""

    pass


@dataclass(frozen=True)
class SessionInfo:
    """Decoded view of a session token."""

    user_id: str
    email: str
    created_at: int
    expires_at: int

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, UTC)

    def age(self, now: int) -> int:
        """Seconds since the session was (re)issued."""
        return now - self.created_at

    def seconds_remaining(self, now: int) -> int:
        return self.expires_at - now


def _timestamp(now: datetime | None) -> int:
    return int((now or utcnow()).timestamp())


def _encode(user_id: str, email: str, created_at: int, issued_at: int) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "created_at": created_at,
        "iat": issued_at,
        "exp": created_at + settings.session_max_age_seconds,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def create_session_token(user: User, now: datetime | None = None) -> str:
    """Issue a session token for a freshly authenticated user."""
    issued_at = _timestamp(now)
    return _encode(user.id, user.email, issued_at, issued_at)


def decode_token(token: str, now: datetime | None = None) -> dict:
    """Decode and validate a session token, including its expiry."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False},
        )
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e

    # Expiry is checked here rather than by jose so callers can pass their own clock
    exp = payload.get("exp")
    if not isinstance(exp, int) or _timestamp(now) >= exp:
        raise AuthError("Session expired")

    return payload


def read_session(token: str, now: datetime | None = None) -> SessionInfo:
    """Decode a session token into a SessionInfo."""
    payload = decode_token(token, now)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token: missing user ID")

    created_at = payload.get("created_at")
    if not isinstance(created_at, int):
        # Tokens without a creation time are treated as issued at iat
        created_at = int(payload.get("iat") or _timestamp(now))

    return SessionInfo(
        user_id=user_id,
        email=payload.get("email", ""),
        created_at=created_at,
        expires_at=created_at + settings.session_max_age_seconds,
    )


def renew_session(token: str, now: datetime | None = None) -> str:
    """Extend a still-valid session, restarting its lifetime from ``now``.

    The new ``created_at`` is always at least one second after the old one, so the
    renewed session expires strictly later than the one it replaces.
    """
    info = read_session(token, now)
    current = _timestamp(now)
    created_at = max(current, info.created_at + 1)
    return _encode(info.user_id, info.email, created_at, current)


def is_stale(info: SessionInfo, now: datetime | None = None) -> bool:
    """Whether a session has aged past the warning window without being renewed."""
    return info.age(_timestamp(now)) > settings.session_warning_seconds


async def verify_token(session: AsyncSession, token: str) -> User:
    """Verify a session token and return the associated user."""
    info = read_session(token)

    stmt = select(User).where(User.id == info.user_id)
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()

    if not user:
        raise AuthError("User not found")

    return user


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Look up a user by email address."""
    stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def authorize(session: AsyncSession, email: str, password: str) -> User | None:
    """Check email/password credentials.

    Returns None, never raises, when the user does not exist, has no password
    (e.g. an account created by an external provider), the password is wrong, or
    the email address has not been verified yet.
    """
    if not email or not password:
        return None

    user = await get_user_by_email(session, email)
    if not user or not user.password:
        return None

    if not verify_password(password, user.password):
        logger.info(f"Failed login for {email}: bad password")
        return None

    if not user.email_verified:
        logger.info(f"Failed login for {email}: email not verified")
        return None

    return user
