"""Keep an API session alive from the client side.

``SessionRefresher`` mirrors what a browser does with a session that expires:
it warns ``warning_seconds`` before ``expires_at`` and signs out at
``expires_at`` unless the session was renewed in between. Both timers run on the
current asyncio loop and are rescheduled whenever the session is renewed.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx

from spendee.config import settings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Client view of the session."""

    ACTIVE = "active"
    WARNING_SHOWN = "warning_shown"
    EXPIRED = "expired"


class SessionRefresher:
    """Schedules the expiry warning and the forced sign-out for one session.

    Args:
        renew: Coroutine function that renews the session server-side and returns
            the new ``expires_at`` (unix seconds).
        on_warning: Called when the warning window opens (e.g. show a dialog).
        on_expire: Called, and awaited if it is a coroutine function, when the
            session expires without renewal (e.g. sign out and go to login).
        warning_seconds: Lead time for the warning.
        clock: Returns the current unix time; injectable for tests.
    """

    def __init__(
        self,
        renew: Callable[[], Awaitable[float]],
        on_warning: Callable[[], Any] | None = None,
        on_expire: Callable[[], Any] | None = None,
        warning_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._renew = renew
        self._on_warning = on_warning
        self._on_expire = on_expire
        self.warning_seconds = (
            settings.session_warning_seconds if warning_seconds is None else warning_seconds
        )
        self._clock = clock

        self.state = SessionState.ACTIVE
        self.expires_at: float | None = None
        self.expired = asyncio.Event()
        self._warning_handle: asyncio.TimerHandle | None = None
        self._logout_handle: asyncio.TimerHandle | None = None
        self._expire_task: asyncio.Task | None = None

    @property
    def has_pending_timers(self) -> bool:
        return self._warning_handle is not None or self._logout_handle is not None

    def start(self, expires_at: float) -> None:
        """(Re)schedule both timers against ``expires_at``, cancelling any earlier ones."""
        self._cancel_timers()
        loop = asyncio.get_running_loop()
        now = self._clock()

        self.expires_at = expires_at
        self.state = SessionState.ACTIVE
        self.expired.clear()

        warn_in = max(expires_at - self.warning_seconds - now, 0)
        logout_in = max(expires_at - now, 0)
        self._warning_handle = loop.call_later(warn_in, self._show_warning)
        self._logout_handle = loop.call_later(logout_in, self._expire)

    async def renew(self) -> float:
        """Renew the session and restart the timers from the new expiry."""
        if self.state is SessionState.EXPIRED:
            raise RuntimeError("Session already expired")

        expires_at = await self._renew()
        # The sign-out timer may have fired while the renewal was in flight
        if self.state is SessionState.EXPIRED:
            raise RuntimeError("Session expired during renewal")
        if self.expires_at is not None and expires_at <= self.expires_at:
            logger.warning(f"Renewal did not extend the session ({expires_at} <= {self.expires_at})")

        self.start(expires_at)
        return expires_at

    def dismiss(self) -> None:
        """Hide the warning without renewing; the sign-out timer keeps running."""
        if self.state is SessionState.WARNING_SHOWN:
            self.state = SessionState.ACTIVE

    def close(self) -> None:
        """Cancel pending timers (the owning view is going away)."""
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        for handle in (self._warning_handle, self._logout_handle):
            if handle is not None:
                handle.cancel()
        self._warning_handle = None
        self._logout_handle = None

    def _show_warning(self) -> None:
        self._warning_handle = None
        if self.state is not SessionState.ACTIVE:
            return
        self.state = SessionState.WARNING_SHOWN
        if self._on_warning is not None:
            self._on_warning()

    def _expire(self) -> None:
        self._logout_handle = None
        if self._warning_handle is not None:
            self._warning_handle.cancel()
            self._warning_handle = None

        self.state = SessionState.EXPIRED
        logger.info("Session expired without renewal")

        if self._on_expire is None:
            self.expired.set()
        elif inspect.iscoroutinefunction(self._on_expire):
            self._expire_task = asyncio.get_running_loop().create_task(self._run_on_expire())
        else:
            self._on_expire()
            self.expired.set()

    async def _run_on_expire(self) -> None:
        try:
            await self._on_expire()  # type: ignore[misc]
        finally:
            self.expired.set()


class SessionClient:
    """Minimal authenticated HTTP client for the session endpoints."""

    def __init__(self, base_url: str = "", client: httpx.AsyncClient | None = None):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self.access_token: str | None = None
        self.expires_at: int | None = None

    @property
    def headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def _store(self, data: dict) -> int:
        self.access_token = data.get("access_token") or self.access_token
        self.expires_at = int(data["expires_at"])
        return self.expires_at

    async def login(self, email: str, password: str) -> int:
        """Sign in with credentials; returns the session's ``expires_at``."""
        response = await self.client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        response.raise_for_status()
        return self._store(response.json())

    async def refresh(self) -> int:
        """Renew the current session; returns the new ``expires_at``."""
        token = self.access_token
        response = await self.client.post("/api/auth/refresh", headers=self.headers)
        response.raise_for_status()
        if self.access_token != token:
            raise RuntimeError("Signed out while the session was being renewed")
        return self._store(response.json())

    async def sign_out(self) -> None:
        """End the session locally and tell the server."""
        try:
            await self.client.post("/api/auth/logout", headers=self.headers)
        finally:
            self.access_token = None
            self.expires_at = None

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def refresher(self, on_warning: Callable[[], Any] | None = None) -> SessionRefresher:
        """A SessionRefresher that renews through this client and signs out on expiry."""
        return SessionRefresher(renew=self.refresh, on_warning=on_warning, on_expire=self.sign_out)
