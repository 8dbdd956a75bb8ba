# Shared FastAPI dependencies for the reference API.

from __future__ import annotations

from fastapi import HTTPException, Request

from sessionguard.protocol import SESSION_COOKIE
from sessionguard.server.sessions import Session
from sessionguard.server.users import User


def require_session(request: Request) -> Session:
    """Resolve the caller's session from the HttpOnly cookie or answer 401."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        raise HTTPException(status_code=401, detail="No session provided")

    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return session


def current_user(request: Request, session: Session) -> User:
    user = request.app.state.users.get(session.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
