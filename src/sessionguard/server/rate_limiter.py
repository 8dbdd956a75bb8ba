"""In-memory token-bucket rate limiting for the session bootstrap endpoints.

Pre-configured tiers (per client IP):
  - login:         5 attempts per 15 minutes
  - password reset: 3 requests per hour
  - verification:  5 attempts per hour
"""

from __future__ import annotations

import math
import time

from fastapi import HTTPException, Request

__all__ = [
    "RateLimiter",
    "login_limiter",
    "password_reset_limiter",
    "rate_limit",
    "verification_limiter",
]


class _Bucket:
    __slots__ = ("tokens", "last_refill")

    def __init__(self, capacity: float, now: float):
        self.tokens: float = capacity
        self.last_refill: float = now


class RateLimiter:
    """Token bucket keyed by client identifier.

    Parameters
    ----------
    max_requests : int
        Bucket capacity (burst size).
    per_seconds : float
        Time over which a full bucket refills.
    message : str
        Error returned to throttled clients.
    """

    def __init__(self, max_requests: int, per_seconds: float, message: str):
        self.capacity = max_requests
        self.rate = max_requests / per_seconds
        self.message = message
        self._buckets: dict[str, _Bucket] = {}

    def retry_after(self, key: str) -> float | None:
        """Consume one token for *key*; return None if allowed, else seconds to wait."""
        now = time.monotonic()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket(self.capacity, now)

        bucket.tokens = min(self.capacity, bucket.tokens + (now - bucket.last_refill) * self.rate)
        bucket.last_refill = now

        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return None
        return (1.0 - bucket.tokens) / self.rate

    def reset(self) -> None:
        self._buckets.clear()


login_limiter = RateLimiter(5, 15 * 60, "Too many login attempts, please try again later.")
password_reset_limiter = RateLimiter(
    3, 60 * 60, "Too many password reset requests, please try again later."
)
verification_limiter = RateLimiter(
    5, 60 * 60, "Too many verification attempts, please try again later."
)


def rate_limit(limiter: RateLimiter):
    """FastAPI dependency enforcing *limiter* per client IP."""

    async def _check(request: Request) -> None:
        client_ip = request.client.host if request.client else "unknown"
        wait = limiter.retry_after(client_ip)
        if wait is not None:
            raise HTTPException(
                status_code=429,
                detail=limiter.message,
                headers={"Retry-After": str(math.ceil(wait))},
            )

    return _check
