"""CSRF token issuance, validation and the enforcing middleware.

Tokens are rotated on every response to a request that carries (or creates) a valid
session.  Each session keeps its most recently issued tokens, plus every token issued
within a short grace period, so that interleaved in-flight requests from the same
client are not rejected merely because another response rotated the token first.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Request
from fastapi.responses import JSONResponse

from sessionguard.config import Posture, Settings
from sessionguard.protocol import CSRF_COOKIE, CSRF_HEADER, SESSION_COOKIE, needs_csrf

__all__ = ["CsrfTokenStore", "csrf_middleware", "set_cookie_options"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _IssuedToken:
    value: str
    issued_at: datetime
    expires_at: datetime


class CsrfTokenStore:
    """Recently issued tokens per session.

    A token is accepted while it is unexpired and either among the ``window`` most
    recent tokens of its session or issued less than ``grace`` ago. The grace period
    keeps a burst of concurrent calls valid however many rotations it triggers.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        window: int = 5,
        grace: timedelta = timedelta(seconds=60),
    ):
        self.ttl = ttl
        self.window = window
        self.grace = grace
        self._tokens: dict[str, list[_IssuedToken]] = {}

    def _live(self, issued: list[_IssuedToken], now: datetime) -> list[_IssuedToken]:
        recent = len(issued) - self.window
        return [
            entry
            for i, entry in enumerate(issued)
            if entry.expires_at > now and (i >= recent or now - entry.issued_at < self.grace)
        ]

    def issue(self, session_id: str) -> str:
        """Rotate: generate a new token for *session_id* and return it."""
        token = secrets.token_hex(32)
        now = datetime.now(UTC)
        issued = self._tokens.get(session_id, [])
        issued.append(_IssuedToken(token, now, now + self.ttl))
        self._tokens[session_id] = self._live(issued, now)
        return token

    def validate(self, session_id: str, token: str) -> bool:
        issued = self._tokens.get(session_id)
        if not issued or not token:
            return False
        for entry in self._live(issued, datetime.now(UTC)):
            if hmac.compare_digest(entry.value, token):
                return True
        return False

    def discard(self, session_id: str) -> None:
        self._tokens.pop(session_id, None)

    def cleanup_expired(self) -> int:
        """Drop stale tokens; returns the number of sessions left without any."""
        now = datetime.now(UTC)
        emptied = []
        for session_id, issued in self._tokens.items():
            live = self._live(issued, now)
            if live:
                self._tokens[session_id] = live
            else:
                emptied.append(session_id)
        for session_id in emptied:
            del self._tokens[session_id]
        return len(emptied)


def set_cookie_options(settings: Settings) -> dict:
    """Cookie attributes for the current deployment posture."""
    if settings.posture is Posture.CROSS_ORIGIN:
        return {"samesite": "none", "secure": True, "path": "/"}
    return {"samesite": "strict", "secure": settings.secure_cookies, "path": "/"}


def _api_path(request: Request, prefix: str) -> str:
    path = request.url.path
    if prefix and path.startswith(prefix):
        path = path[len(prefix) :] or "/"
    return path


async def csrf_middleware(request: Request, call_next):
    """Enforce and rotate the anti-forgery token.

    Requests without a valid session are passed through untouched so the route can
    answer 401; a forgery-check 403 is only ever returned to an authenticated caller.
    """
    state = request.app.state
    settings: Settings = state.settings
    sessions = state.sessions
    tokens: CsrfTokenStore = state.csrf_tokens

    session_cookie = request.cookies.get(SESSION_COOKIE)
    session = sessions.get(session_cookie)

    if session is not None and needs_csrf(
        request.method, _api_path(request, settings.api_prefix)
    ):
        submitted = request.headers.get(CSRF_HEADER)
        if not submitted:
            logger.warning("CSRF token missing: %s %s", request.method, request.url.path)
            response = JSONResponse(status_code=403, content={"error": "CSRF token required"})
        elif not tokens.validate(session.id, submitted):
            logger.warning("CSRF token mismatch: %s %s", request.method, request.url.path)
            response = JSONResponse(status_code=403, content={"error": "Invalid CSRF token"})
        else:
            response = await call_next(request)
    else:
        response = await call_next(request)

    # Login/setup create a session during the request.
    active_id = getattr(request.state, "issued_session_id", None)
    if active_id is None and session is not None and sessions.get(session.id) is not None:
        active_id = session.id

    if active_id is not None:
        token = tokens.issue(active_id)
        response.headers[CSRF_HEADER] = token
        response.set_cookie(
            key=CSRF_COOKIE,
            value=token,
            httponly=False,
            max_age=int(tokens.ttl.total_seconds()),
            **set_cookie_options(settings),
        )
    elif session_cookie:
        if session is not None:
            tokens.discard(session.id)
        response.delete_cookie(key=CSRF_COOKIE, path="/")

    return response
