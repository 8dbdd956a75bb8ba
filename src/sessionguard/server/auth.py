# Auth router: login, logout, identity check, first-run setup, e-mail
# verification and password reset/change.
#
# CSRF tokens are attached by csrf_middleware; routes that create a session
# record its id on request.state so the response already carries a token.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from sessionguard.config import Settings
from sessionguard.protocol import SESSION_COOKIE
from sessionguard.server.csrf import set_cookie_options
from sessionguard.server.deps import current_user, require_session
from sessionguard.server.rate_limiter import (
    login_limiter,
    password_reset_limiter,
    rate_limit,
    verification_limiter,
)
from sessionguard.server.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    ResetPasswordRequest,
    SetupRequest,
    SuccessResponse,
    TokenRequest,
    UserOut,
)
from sessionguard.server.sessions import Session
from sessionguard.server.users import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _start_session(request: Request, response: Response, user: User) -> dict:
    settings: Settings = request.app.state.settings
    session = request.app.state.sessions.create(user.id)
    request.state.issued_session_id = session.id

    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.id,
        httponly=True,
        max_age=int(request.app.state.sessions.ttl.total_seconds()),
        **set_cookie_options(settings),
    )
    return {"user": user.public(), "expiresAt": session.expires_at.isoformat()}


def _end_session(request: Request, response: Response, session: Session) -> None:
    request.app.state.sessions.delete(session.id)
    response.delete_cookie(key=SESSION_COOKIE, path="/")
    logger.info("Session ended for user %s", session.user_id)


def _revoke_all(request: Request, user_id: int) -> None:
    request.app.state.sessions.delete_user_sessions(user_id)


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit(login_limiter))],
)
async def login(body: LoginRequest, request: Request, response: Response):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password required")

    user = request.app.state.users.authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _start_session(request, response, user)


@router.post("/auth/logout", response_model=SuccessResponse)
async def logout(
    request: Request, response: Response, session: Session = Depends(require_session)
):
    _end_session(request, response, session)
    return SuccessResponse()


@router.delete("/sessions/self", response_model=SuccessResponse)
async def delete_own_session(
    request: Request, response: Response, session: Session = Depends(require_session)
):
    """Logout expressed as deleting the caller's own session resource."""
    _end_session(request, response, session)
    return SuccessResponse()


@router.get("/auth/me", response_model=UserOut)
async def me(request: Request, session: Session = Depends(require_session)):
    """Identity check; side-effect free apart from token rotation."""
    return current_user(request, session).public()


@router.get("/auth/setup-required")
async def setup_required(request: Request):
    return {"setupRequired": not request.app.state.users.has_users()}


@router.post("/auth/setup", response_model=LoginResponse)
async def setup(body: SetupRequest, request: Request, response: Response):
    """Create the initial admin account and log it in."""
    if not body.email or not body.password or not body.name:
        raise HTTPException(status_code=400, detail="Email, password, and name required")

    users = request.app.state.users
    if users.has_users():
        raise HTTPException(status_code=400, detail="Setup already completed")

    try:
        admin = users.create(body.email, body.password, body.name, role="admin")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    admin.email_verified = True
    return _start_session(request, response, admin)


@router.post(
    "/auth/verify-email",
    response_model=SuccessResponse,
    dependencies=[Depends(rate_limit(verification_limiter))],
)
async def verify_email(body: TokenRequest, request: Request):
    if not body.token:
        raise HTTPException(status_code=400, detail="Token required")
    if not request.app.state.users.verify_email(body.token):
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    return SuccessResponse()


@router.post(
    "/auth/request-password-reset",
    response_model=SuccessResponse,
    dependencies=[Depends(rate_limit(password_reset_limiter))],
)
async def request_password_reset(body: PasswordResetRequest, request: Request):
    if not body.email:
        raise HTTPException(status_code=400, detail="Email required")

    token = request.app.state.users.create_reset_token(body.email)
    if token:
        # Delivery is handled by the mail service; nothing to send from here.
        logger.info("Password reset requested for an existing account")

    # Same answer either way so account existence is not revealed.
    return SuccessResponse(message="If an account exists, a reset link has been sent.")


@router.post("/auth/reset-password", response_model=SuccessResponse)
async def reset_password(body: ResetPasswordRequest, request: Request):
    if not body.token or not body.password:
        raise HTTPException(status_code=400, detail="Token and password required")

    try:
        user = request.app.state.users.reset_password(body.token, body.password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    _revoke_all(request, user.id)
    return SuccessResponse()


@router.post("/auth/change-password", response_model=SuccessResponse)
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    response: Response,
    session: Session = Depends(require_session),
):
    if not body.current_password or not body.new_password:
        raise HTTPException(status_code=400, detail="Current and new password required")

    try:
        request.app.state.users.change_password(
            session.user_id, body.current_password, body.new_password
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    # Every session of the user, including this one, must log in again.
    _revoke_all(request, session.user_id)
    response.delete_cookie(key=SESSION_COOKIE, path="/")
    return SuccessResponse()
