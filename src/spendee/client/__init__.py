"""Client-side helpers for talking to the Spendee API."""

from spendee.client.session import SessionClient, SessionRefresher, SessionState

__all__ = ["SessionClient", "SessionRefresher", "SessionState"]
