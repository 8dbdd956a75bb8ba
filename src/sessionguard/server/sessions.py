# Server-held sessions.
#
# In-memory store; the session id only ever travels in the HttpOnly cookie.

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Session:
    id: str
    user_id: int
    expires_at: datetime
    created_at: datetime = field(default_factory=_now)
    last_activity_at: datetime = field(default_factory=_now)
    revoked: bool = False

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.revoked and (now or _now()) < self.expires_at


class SessionStore:
    """Sessions keyed by id.

    A session is valid iff it has not expired and has not been revoked. Revocation
    removes the record, so a revoked id behaves exactly like an unknown one.
    """

    def __init__(self, ttl: timedelta = timedelta(days=7)):
        self.ttl = ttl
        self._sessions: dict[str, Session] = {}

    def create(self, user_id: int) -> Session:
        now = _now()
        session = Session(
            id=secrets.token_hex(32),
            user_id=user_id,
            expires_at=now + self.ttl,
            created_at=now,
            last_activity_at=now,
        )
        self._sessions[session.id] = session
        logger.info("Session created for user %s", user_id)
        return session

    def get(self, session_id: str | None) -> Session | None:
        """Return the valid session for *session_id* and refresh its activity time."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = _now()
        if not session.is_valid(now):
            return None
        session.last_activity_at = now
        return session

    def delete(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.revoked = True
        return True

    def delete_user_sessions(self, user_id: int) -> int:
        """Revoke every session of *user_id* (password reset / change)."""
        ids = [sid for sid, s in self._sessions.items() if s.user_id == user_id]
        for sid in ids:
            self.delete(sid)
        if ids:
            logger.info("Revoked %d session(s) for user %s", len(ids), user_id)
        return len(ids)

    def cleanup_expired(self) -> int:
        now = _now()
        stale = [sid for sid, s in self._sessions.items() if not s.is_valid(now)]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
