"""Typed failures raised by the API client."""

from __future__ import annotations

__all__ = [
    "ApiError",
    "CsrfRejected",
    "HttpError",
    "NetworkError",
    "ProtocolError",
    "TokenUnavailable",
]

NETWORK_ERROR_MESSAGE = "Network error: Failed to connect to backend API"
TOKEN_UNAVAILABLE_MESSAGE = (
    "Could not obtain a security token from the server. Please reload the page and try again."
)


def http_status_message(status_code: int) -> str:
    return f"HTTP error! status: {status_code}"


class ApiError(Exception):
    """Base class for every failure surfaced by the client."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class NetworkError(ApiError):
    """The request never completed (connection refused, DNS, timeout, ...)."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message)


class ProtocolError(ApiError):
    """The response completed but did not carry the expected JSON envelope."""


class TokenUnavailable(ApiError):
    """No anti-forgery token could be harvested; the request was not sent."""

    def __init__(self, message: str = TOKEN_UNAVAILABLE_MESSAGE):
        super().__init__(message)


class HttpError(ApiError):
    """Non-2xx response; ``message`` is the server's ``error`` field when present."""

    @property
    def is_auth_error(self) -> bool:
        return self.status_code == 401


class CsrfRejected(HttpError):
    """403 forgery-check rejection (token missing or stale)."""
