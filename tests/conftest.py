"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from spendee.config import settings
from spendee.database import get_session
from spendee.main import app
from spendee.models import Category, CategoryType, User, utcnow
from spendee.services.auth import create_session_token
from spendee.services.passwords import hash_password
from spendee.services.rate_limit import get_rate_limiter

TEST_PASSWORD = "Sup3rSecret"


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with an empty rate limit window."""
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture(autouse=True)
def mock_email():
    """Capture outgoing emails instead of handing them to a backend."""
    service = MagicMock()
    service.send_verification_email = AsyncMock(return_value=True)
    service.send_password_reset_email = AsyncMock(return_value=True)

    with patch("spendee.services.notifications.email_service", service):
        yield service


@pytest.fixture
async def test_engine():
    """A fresh in-memory database per test."""
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session shared by the test body and the app under test."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def user(session: AsyncSession) -> User:
    """A verified user with a password."""
    user = User(
        email="test@example.com",
        name="Test User",
        password=hash_password(TEST_PASSWORD),
        email_verified=utcnow(),
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def unverified_user(session: AsyncSession) -> User:
    """A user who registered but never followed the verification link."""
    user = User(
        email="pending@example.com",
        name="Pending User",
        password=hash_password(TEST_PASSWORD),
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def other_user(session: AsyncSession) -> User:
    """A second account, for checking that data stays private."""
    user = User(email="other@example.com", name="Other User", email_verified=utcnow())
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
def user_token(user: User) -> str:
    """Create a session token for the test user."""
    return create_session_token(user)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the test user."""
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
async def expense_category(session: AsyncSession, user: User) -> Category:
    category = Category(user_id=user.id, name="Groceries", type=CategoryType.EXPENSE, icon="Cart")
    session.add(category)
    await session.commit()
    return category


@pytest.fixture
async def income_category(session: AsyncSession, user: User) -> Category:
    category = Category(user_id=user.id, name="Salary", type=CategoryType.INCOME, icon="Wallet")
    session.add(category)
    await session.commit()
    return category


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.patch(url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.delete(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
