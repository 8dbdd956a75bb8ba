"""Wire contract shared by the client and the reference server.

Header and cookie names, the set of state-changing methods and the endpoints that
must be reachable before any session (and therefore any CSRF token) exists.
"""

from __future__ import annotations

__all__ = [
    "CSRF_COOKIE",
    "CSRF_EXEMPT_PATHS",
    "CSRF_HEADER",
    "SESSION_COOKIE",
    "STATE_CHANGING_METHODS",
    "is_csrf_exempt",
    "is_forgery_rejection",
    "needs_csrf",
]

CSRF_HEADER = "X-CSRF-Token"
CSRF_COOKIE = "csrfToken"
SESSION_COOKIE = "sessionId"

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})

# Session bootstrap operations that necessarily precede token issuance.
CSRF_EXEMPT_PATHS = frozenset(
    {
        "/auth/login",
        "/auth/setup",
        "/auth/verify-email",
        "/auth/reset-password",
        "/auth/request-password-reset",
    }
)


def _normalize(endpoint: str) -> str:
    path = endpoint.split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def is_csrf_exempt(endpoint: str) -> bool:
    """True if *endpoint* (relative to the API root) is on the exempt allow-list."""
    return _normalize(endpoint) in CSRF_EXEMPT_PATHS


def needs_csrf(method: str, endpoint: str) -> bool:
    """True if a request must carry the anti-forgery token."""
    return method.upper() in STATE_CHANGING_METHODS and not is_csrf_exempt(endpoint)


def is_forgery_rejection(message: str | None) -> bool:
    """Detect the server's forgery-check failure messages."""
    return bool(message) and "csrf" in message.lower()
