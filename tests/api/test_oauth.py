"""Provider sign-in endpoint tests. The provider's HTTP API is mocked."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.config import settings
from spendee.models import Account, User
from spendee.services.auth import read_session


def _github_api(account_id: int = 4242, email: str = "octo@example.com", verified: bool = True):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/login/oauth/access_token":
            return httpx.Response(200, json={"access_token": "gho_123"})
        if request.url.path == "/user":
            return httpx.Response(
                200,
                json={
                    "id": account_id,
                    "login": "octo",
                    "name": "Octo Cat",
                    "avatar_url": "https://avatars.example.com/octo.png",
                },
            )
        if request.url.path == "/user/emails":
            return httpx.Response(200, json=[{"email": email, "primary": True, "verified": verified}])
        return httpx.Response(404)

    return handler


@pytest.fixture
def github(monkeypatch):
    """Enable GitHub sign-in and route its API calls to a mock transport."""
    monkeypatch.setattr(settings, "github_client_id", "gh-id")
    monkeypatch.setattr(settings, "github_client_secret", "gh-secret")
    monkeypatch.setattr(settings, "api_url", "http://api.test")

    api = {"handler": _github_api()}

    def http_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(api["handler"]))

    monkeypatch.setattr("spendee.services.oauth.http_client", http_client)
    return api


async def _start(client: AsyncClient) -> str:
    response = await client.get("/api/auth/github/login")
    assert response.status_code == 200
    params = parse_qs(urlparse(response.json()["url"]).query)
    return params["state"][0]


@pytest.mark.asyncio
async def test_login_url(client: AsyncClient, github):
    response = await client.get("/api/auth/github/login")
    assert response.status_code == 200

    url = urlparse(response.json()["url"])
    params = parse_qs(url.query)
    assert url.netloc == "github.com"
    assert params["client_id"] == ["gh-id"]
    assert params["redirect_uri"] == ["http://api.test/api/auth/github/callback"]
    assert params["state"][0]


@pytest.mark.asyncio
async def test_unconfigured_provider(client: AsyncClient, github):
    response = await client.get("/api/auth/google/login")
    assert response.status_code == 404
    assert response.json() == {"error": "Unknown provider"}


@pytest.mark.asyncio
async def test_callback_creates_user_and_session(
    client: AsyncClient, session: AsyncSession, github
):
    state = await _start(client)

    response = await client.get(
        "/api/auth/github/callback", params={"code": "the-code", "state": state}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "octo@example.com"
    assert data["user"]["email_verified"] is not None

    info = read_session(data["access_token"])
    assert info.user_id == data["user"]["id"]
    assert data["expires_at"] == info.expires_at

    result = await session.execute(select(Account).where(Account.user_id == info.user_id))
    assert result.scalar_one().provider_account_id == "4242"

    me = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["email"] == "octo@example.com"


@pytest.mark.asyncio
async def test_callback_returning_user(client: AsyncClient, session: AsyncSession, github):
    first = await client.get(
        "/api/auth/github/callback", params={"code": "c1", "state": await _start(client)}
    )
    second = await client.get(
        "/api/auth/github/callback", params={"code": "c2", "state": await _start(client)}
    )
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["user"]["id"] == second.json()["user"]["id"]

    result = await session.execute(select(User))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_callback_state_is_single_use(client: AsyncClient, github):
    state = await _start(client)
    first = await client.get("/api/auth/github/callback", params={"code": "c", "state": state})
    assert first.status_code == 200

    replay = await client.get("/api/auth/github/callback", params={"code": "c", "state": state})
    assert replay.status_code == 400
    assert replay.json() == {"error": "Invalid state"}


@pytest.mark.asyncio
async def test_callback_unknown_state(client: AsyncClient, github):
    response = await client.get(
        "/api/auth/github/callback", params={"code": "c", "state": "forged"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid state"}


@pytest.mark.asyncio
async def test_callback_missing_code(client: AsyncClient, github):
    response = await client.get("/api/auth/github/callback", params={"state": "s"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing code or state"}


@pytest.mark.asyncio
async def test_callback_cancelled_at_provider(client: AsyncClient, github):
    response = await client.get(
        "/api/auth/github/callback", params={"error": "access_denied", "state": "s"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Sign-in was cancelled"}


@pytest.mark.asyncio
async def test_callback_unverified_email(client: AsyncClient, session: AsyncSession, github):
    github["handler"] = _github_api(verified=False)
    state = await _start(client)

    response = await client.get("/api/auth/github/callback", params={"code": "c", "state": state})
    assert response.status_code == 400
    assert response.json() == {"error": "Provider did not return a verified email"}

    result = await session.execute(select(User))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_callback_provider_down(client: AsyncClient, github):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    github["handler"] = handler
    state = await _start(client)

    response = await client.get("/api/auth/github/callback", params={"code": "c", "state": state})
    assert response.status_code == 400
    assert response.json() == {"error": "Sign-in with provider failed"}


@pytest.mark.asyncio
async def test_callback_email_owned_by_password_account(
    client: AsyncClient, user: User, github
):
    github["handler"] = _github_api(email=user.email)
    state = await _start(client)

    response = await client.get("/api/auth/github/callback", params={"code": "c", "state": state})
    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered with another sign-in method"}
