"""Sliding-window rate limiting for abuse-prone endpoints."""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from fastapi import Request


class RateLimitType(str, Enum):
    """Rate limit buckets."""

    AUTH = "auth"
    API = "api"


@dataclass
class RateLimitConfig:
    """Requests allowed per window."""

    requests: int
    window_seconds: int


RATE_LIMIT_CONFIG: dict[RateLimitType, RateLimitConfig] = {
    # Login, registration and the email link endpoints
    RateLimitType.AUTH: RateLimitConfig(requests=10, window_seconds=60),
    RateLimitType.API: RateLimitConfig(requests=120, window_seconds=60),
}


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class InMemoryRateLimiter:
    """Per-process sliding window limiter.

    Only correct for a single instance; counts are not shared between workers.
    """

    def __init__(self) -> None:
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def check(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Record a request for ``identifier`` unless it is over the limit."""
        config = RATE_LIMIT_CONFIG[limit_type]
        key = f"{limit_type.value}:{identifier}"
        now = time.time()
        window_start = now - config.window_seconds

        async with self._lock:
            timestamps = [t for t in self._requests[key] if t > window_start]

            if len(timestamps) >= config.requests:
                self._requests[key] = timestamps
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(min(timestamps) + config.window_seconds),
                )

            timestamps.append(now)
            self._requests[key] = timestamps
            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=config.requests - len(timestamps),
                reset=int(now + config.window_seconds),
            )

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._requests.clear()


_rate_limiter = InMemoryRateLimiter()


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get the global rate limiter instance."""
    return _rate_limiter


def get_client_ip(request: Request) -> str | None:
    """Client address, preferring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None


async def check_rate_limit(request: Request, limit_type: RateLimitType) -> RateLimitResult:
    """Check the limit for the client making ``request``."""
    identifier = f"ip:{get_client_ip(request) or 'unknown'}"
    return await get_rate_limiter().check(identifier, limit_type)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers describing the limit state."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.success:
        headers["Retry-After"] = str(max(0, result.reset - int(time.time())))

    return headers
