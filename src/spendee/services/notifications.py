"""Issue email tokens and deliver them as links."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from spendee.config import settings
from spendee.models import User
from spendee.services.auth import get_user_by_email
from spendee.services.email import EmailService, email_service
from spendee.services.tokens import TokenPurpose, issue_token

logger = logging.getLogger(__name__)


def verification_url(token: str) -> str:
    return f"{settings.app_url}/verify-email?token={token}"


def reset_password_url(token: str) -> str:
    return f"{settings.app_url}/reset-password?token={token}"


async def send_verification_email(
    session: AsyncSession,
    user: User,
    service: EmailService | None = None,
) -> bool:
    """Issue a fresh verification token for ``user`` and email the link.

    Any earlier verification link for the user stops working. The caller commits.
    """
    service = service or email_service
    token = await issue_token(session, user.id, TokenPurpose.VERIFY_EMAIL)
    sent = await service.send_verification_email(user.email, verification_url(token))
    if sent:
        logger.info(f"Verification email sent to {user.email}")
    else:
        logger.error(f"Verification email to {user.email} was not delivered")
    return sent


async def send_password_reset_email(
    session: AsyncSession,
    email: str,
    service: EmailService | None = None,
) -> bool:
    """Email a password reset link if an account exists for ``email``.

    Unknown addresses are a silent no-op: no token is created and nothing is sent.
    Returns whether an email went out. The caller commits.
    """
    user = await get_user_by_email(session, email)
    if not user:
        logger.debug("Password reset requested for an unknown address")
        return False

    service = service or email_service
    token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)
    sent = await service.send_password_reset_email(user.email, reset_password_url(token))
    if not sent:
        logger.error(f"Password reset email to {user.email} was not delivered")
    return sent
