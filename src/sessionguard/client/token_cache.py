"""In-memory holder of the most recently observed anti-forgery token."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class TokenCache:
    """Single shared cell, last write wins.

    Every response that carries the token header overwrites the value, whatever its
    status or endpoint.  There is no expiry tracking: the server guarantees that the
    token it just rotated to stays valid for the request sent right after.
    """

    __slots__ = ("_token",)

    def __init__(self, token: str | None = None):
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        if token != self._token:
            logger.debug("CSRF token rotated")
        self._token = token

    def clear(self) -> None:
        """Forget the token (logout / reload)."""
        self._token = None
