"""Email token issue/consume tests."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.errors import ExpiredError, NotFoundError
from spendee.models import PasswordResetToken, User, VerificationToken, as_utc, utcnow
from spendee.services.passwords import hash_password, verify_password
from spendee.services.tokens import (
    TokenExpiredError,
    TokenNotFoundError,
    TokenPurpose,
    consume_token,
    get_token,
    issue_token,
    token_ttl,
)


async def _count(session: AsyncSession, model, user_id: str) -> int:
    result = await session.execute(select(model).where(model.user_id == user_id))
    return len(result.scalars().all())


class TestIssueToken:
    @pytest.mark.asyncio
    async def test_issue_sets_expiry(self, session: AsyncSession, unverified_user: User):
        now = utcnow()
        token = await issue_token(session, unverified_user.id, TokenPurpose.VERIFY_EMAIL, now=now)

        record = await get_token(session, token, TokenPurpose.VERIFY_EMAIL)
        assert record is not None
        assert record.user_id == unverified_user.id
        assert as_utc(record.expires) == now + timedelta(hours=24)
        assert len(token) == 64

    @pytest.mark.asyncio
    async def test_reissue_leaves_one_token(self, session: AsyncSession, user: User):
        first = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)
        second = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)

        assert first != second
        assert await _count(session, PasswordResetToken, user.id) == 1
        assert await get_token(session, first, TokenPurpose.RESET_PASSWORD) is None

    @pytest.mark.asyncio
    async def test_purposes_are_independent(self, session: AsyncSession, user: User):
        await issue_token(session, user.id, TokenPurpose.VERIFY_EMAIL)
        await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)

        assert await _count(session, VerificationToken, user.id) == 1
        assert await _count(session, PasswordResetToken, user.id) == 1

    def test_ttls(self):
        assert token_ttl(TokenPurpose.VERIFY_EMAIL) == timedelta(seconds=86400)
        assert token_ttl(TokenPurpose.RESET_PASSWORD) == timedelta(seconds=3600)


class TestConsumeToken:
    @pytest.mark.asyncio
    async def test_verify_email(self, session: AsyncSession, unverified_user: User):
        token = await issue_token(session, unverified_user.id, TokenPurpose.VERIFY_EMAIL)
        now = utcnow()

        user_id = await consume_token(session, token, TokenPurpose.VERIFY_EMAIL, now=now)

        assert user_id == unverified_user.id
        assert unverified_user.email_verified == now
        assert await _count(session, VerificationToken, unverified_user.id) == 0

    @pytest.mark.asyncio
    async def test_reset_password(self, session: AsyncSession, user: User):
        token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)

        await consume_token(
            session,
            token,
            TokenPurpose.RESET_PASSWORD,
            password_hash=hash_password("Brand-n3w"),
        )

        assert verify_password("Brand-n3w", user.password)

    @pytest.mark.asyncio
    async def test_second_consume_not_found(self, session: AsyncSession, unverified_user: User):
        token = await issue_token(session, unverified_user.id, TokenPurpose.VERIFY_EMAIL)
        await consume_token(session, token, TokenPurpose.VERIFY_EMAIL)

        with pytest.raises(TokenNotFoundError) as exc_info:
            await consume_token(session, token, TokenPurpose.VERIFY_EMAIL)

        assert exc_info.value.kind == "not_found"
        assert isinstance(exc_info.value, NotFoundError)

    @pytest.mark.asyncio
    async def test_unknown_token(self, session: AsyncSession):
        with pytest.raises(TokenNotFoundError):
            await consume_token(session, "nope", TokenPurpose.VERIFY_EMAIL)

    @pytest.mark.asyncio
    async def test_wrong_purpose(self, session: AsyncSession, user: User):
        token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)

        with pytest.raises(TokenNotFoundError):
            await consume_token(session, token, TokenPurpose.VERIFY_EMAIL)

    @pytest.mark.asyncio
    async def test_expired_leaves_user_and_token(self, session: AsyncSession, user: User):
        original_hash = user.password
        issued = utcnow() - timedelta(hours=2)
        token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD, now=issued)

        with pytest.raises(TokenExpiredError) as exc_info:
            await consume_token(
                session,
                token,
                TokenPurpose.RESET_PASSWORD,
                password_hash=hash_password("Brand-n3w"),
            )

        assert exc_info.value.kind == "expired"
        assert isinstance(exc_info.value, ExpiredError)
        assert user.password == original_hash
        assert await _count(session, PasswordResetToken, user.id) == 1

    @pytest.mark.asyncio
    async def test_expiry_boundary(self, session: AsyncSession, unverified_user: User):
        issued = utcnow()
        token = await issue_token(
            session, unverified_user.id, TokenPurpose.VERIFY_EMAIL, now=issued
        )
        expires = issued + timedelta(hours=24)

        with pytest.raises(TokenExpiredError):
            await consume_token(session, token, TokenPurpose.VERIFY_EMAIL, now=expires)

        await consume_token(
            session, token, TokenPurpose.VERIFY_EMAIL, now=expires - timedelta(seconds=1)
        )

    @pytest.mark.asyncio
    async def test_reset_requires_hash(self, session: AsyncSession, user: User):
        token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)

        with pytest.raises(ValueError):
            await consume_token(session, token, TokenPurpose.RESET_PASSWORD)
