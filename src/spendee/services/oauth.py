"""Federated sign-in with GitHub and Google (OAuth 2.0 authorization code flow).

The login route hands the browser a provider URL carrying a single-use
``state``; the callback checks that state, exchanges the code for a provider
access token, reads the profile and links it to a local user. Users created
here have no password, so they can only sign in through their provider.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from secrets import token_urlsafe
from urllib.parse import urlencode

import httpx
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.config import settings
from spendee.errors import ConflictError, NotFoundError, ValidationError
from spendee.models import Account, OAuthState, User, as_utc, utcnow
from spendee.services.auth import get_user_by_email

logger = logging.getLogger(__name__)


class OAuthError(ValidationError):
    """The provider refused the exchange or returned an unusable profile."""

    default_message = "Sign-in with provider failed"


class InvalidStateError(ValidationError):
    """The callback's state is unknown, already used, expired or for another provider."""

    default_message = "Invalid state"


@dataclass
class ProviderProfile:
    """What a provider tells us about the signed-in person."""

    account_id: str
    email: str | None
    email_verified: bool
    name: str | None = None
    image: str | None = None


class OAuthProvider(ABC):
    """An OAuth 2.0 provider that identifies users by a verified email."""

    name: str
    authorize_endpoint: str
    token_endpoint: str
    scope: str

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def authorization_params(self, state: str, redirect_uri: str) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """Consent page the browser is sent to."""
        return f"{self.authorize_endpoint}?{urlencode(self.authorization_params(state, redirect_uri))}"

    async def exchange_code(self, client: httpx.AsyncClient, code: str, redirect_uri: str) -> str:
        """Trade an authorization code for a provider access token."""
        response = await client.post(
            self.token_endpoint,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()

        # GitHub reports a bad code as 200 with an "error" field
        access_token = response.json().get("access_token")
        if not access_token:
            raise OAuthError("Token exchange failed")
        return access_token

    @abstractmethod
    async def fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> ProviderProfile:
        """Read the signed-in person's profile."""


class GitHubProvider(OAuthProvider):
    name = "github"
    authorize_endpoint = "https://github.com/login/oauth/authorize"
    token_endpoint = "https://github.com/login/oauth/access_token"
    user_endpoint = "https://api.github.com/user"
    emails_endpoint = "https://api.github.com/user/emails"
    scope = "read:user user:email"

    async def fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> ProviderProfile:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
        }
        response = await client.get(self.user_endpoint, headers=headers)
        response.raise_for_status()
        data = response.json()

        # The public profile email carries no verification flag; ask for the address list
        response = await client.get(self.emails_endpoint, headers=headers)
        response.raise_for_status()
        primary = next(
            (e for e in response.json() if e.get("primary") and e.get("verified")),
            None,
        )

        return ProviderProfile(
            account_id=str(data["id"]),
            email=primary["email"] if primary else data.get("email"),
            email_verified=primary is not None,
            name=data.get("name") or data.get("login"),
            image=data.get("avatar_url"),
        )


class GoogleProvider(OAuthProvider):
    name = "google"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://openidconnect.googleapis.com/v1/userinfo"
    scope = "openid email profile"

    def authorization_params(self, state: str, redirect_uri: str) -> dict[str, str]:
        params = super().authorization_params(state, redirect_uri)
        params["prompt"] = "select_account"
        return params

    async def fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> ProviderProfile:
        response = await client.get(
            self.userinfo_endpoint, headers={"Authorization": f"Bearer {access_token}"}
        )
        response.raise_for_status()
        data = response.json()
        return ProviderProfile(
            account_id=str(data["sub"]),
            email=data.get("email"),
            email_verified=bool(data.get("email_verified")),
            name=data.get("name"),
            image=data.get("picture"),
        )


_PROVIDERS: dict[str, type[OAuthProvider]] = {
    GitHubProvider.name: GitHubProvider,
    GoogleProvider.name: GoogleProvider,
}


def _credentials(name: str) -> tuple[str, str]:
    if name == GitHubProvider.name:
        return settings.github_client_id, settings.github_client_secret
    return settings.google_client_id, settings.google_client_secret


def get_provider(name: str) -> OAuthProvider:
    """Look up a configured provider by name.

    Raises:
        NotFoundError: the provider is unknown or has no client id configured.
    """
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        raise NotFoundError("Unknown provider")

    client_id, client_secret = _credentials(name)
    if not client_id:
        raise NotFoundError("Unknown provider")
    return provider_cls(client_id, client_secret)


def callback_url(provider: str) -> str:
    return f"{settings.api_url}/api/auth/{provider}/callback"


def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=30.0)


async def create_state(session: AsyncSession, provider: str, now: datetime | None = None) -> str:
    """Persist a fresh state for a sign-in attempt. The caller commits."""
    now = now or utcnow()
    await session.execute(delete(OAuthState).where(OAuthState.expires <= now))  # type: ignore[arg-type]

    state = token_urlsafe(32)
    session.add(
        OAuthState(
            state=state,
            provider=provider,
            expires=now + timedelta(seconds=settings.oauth_state_ttl_seconds),
        )
    )
    await session.flush()
    return state


async def consume_state(
    session: AsyncSession, state: str, provider: str, now: datetime | None = None
) -> None:
    """Redeem a state exactly once.

    Raises:
        InvalidStateError: unknown, already used, expired or issued for another provider.
    """
    now = now or utcnow()
    record = await session.get(OAuthState, state)
    if record is None or record.provider != provider:
        raise InvalidStateError()

    # Expired states are left for create_state to purge
    if now >= as_utc(record.expires):
        raise InvalidStateError()

    result = await session.execute(delete(OAuthState).where(OAuthState.state == state))  # type: ignore[arg-type]
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise InvalidStateError()


async def fetch_profile(provider: OAuthProvider, code: str) -> ProviderProfile:
    """Run the code exchange and profile lookup against the provider."""
    async with http_client() as client:
        try:
            access_token = await provider.exchange_code(client, code, callback_url(provider.name))
            return await provider.fetch_profile(client, access_token)
        except httpx.HTTPError as e:
            logger.error(f"{provider.name} sign-in failed: {e}")
            raise OAuthError() from e


async def get_account(session: AsyncSession, provider: str, account_id: str) -> Account | None:
    stmt = select(Account).where(
        Account.provider == provider,
        Account.provider_account_id == account_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def sign_in_with_profile(
    session: AsyncSession,
    provider: str,
    profile: ProviderProfile,
    now: datetime | None = None,
) -> User:
    """Find or create the user behind a provider profile. The caller commits.

    A returning provider account signs in its linked user. A new one creates a
    passwordless user with the provider's verified email, marked verified. An
    email that already belongs to a local user is not linked automatically.

    Raises:
        OAuthError: the provider gave no verified email for a new account.
        ConflictError: the email is already registered with another sign-in method.
    """
    now = now or utcnow()

    account = await get_account(session, provider, profile.account_id)
    if account is not None:
        user = await session.get(User, account.user_id)
        if user is None:
            raise OAuthError()
        if user.email_verified is None:
            user.email_verified = now
            session.add(user)
            await session.flush()
        logger.info(f"Signed in {user.email} via {provider}")
        return user

    if not profile.email or not profile.email_verified:
        raise OAuthError("Provider did not return a verified email")

    email = profile.email.strip().lower()
    if await get_user_by_email(session, email):
        raise ConflictError("Email already registered with another sign-in method")

    user = User(email=email, name=profile.name, image=profile.image, email_verified=now)
    session.add(user)
    await session.flush()

    session.add(Account(user_id=user.id, provider=provider, provider_account_id=profile.account_id))
    await session.flush()

    logger.info(f"Created {user.email} via {provider}")
    return user
