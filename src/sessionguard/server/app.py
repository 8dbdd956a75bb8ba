"""Reference backend implementing the session + CSRF contract.

``create_app()`` builds a FastAPI application whose stores live on ``app.state``
(so every test gets a fresh instance).  Every error response uses the
``{"error": "<message>"}`` envelope the client extracts messages from.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime, timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sessionguard.config import Settings, get_settings
from sessionguard.protocol import CSRF_HEADER
from sessionguard.server.auth import router as auth_router
from sessionguard.server.csrf import CsrfTokenStore, csrf_middleware
from sessionguard.server.sessions import SessionStore
from sessionguard.server.teams import TeamStore
from sessionguard.server.teams import router as teams_router
from sessionguard.server.users import UserDirectory

logger = logging.getLogger(__name__)


async def _cleanup_loop(app: FastAPI, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        sessions = app.state.sessions.cleanup_expired()
        tokens = app.state.csrf_tokens.cleanup_expired()
        if sessions or tokens:
            logger.info("Cleaned up %d expired session(s), %d token set(s)", sessions, tokens)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(
        _cleanup_loop(app, app.state.settings.cleanup_interval_seconds)
    )
    try:
        yield
    finally:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError):
    logger.debug("Rejected request body for %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="SessionGuard reference API",
        version="1.0.0",
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = SessionStore(ttl=timedelta(days=settings.session_ttl_days))
    app.state.csrf_tokens = CsrfTokenStore(
        ttl=timedelta(hours=settings.csrf_token_ttl_hours),
        window=settings.csrf_token_window,
        grace=timedelta(seconds=settings.csrf_token_grace_seconds),
    )
    app.state.users = UserDirectory()
    app.state.teams = TeamStore()

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    # Registered first so CORS wraps it (preflights never reach the CSRF check).
    app.middleware("http")(csrf_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", CSRF_HEADER],
        # Cross-origin clients can only harvest the token if it is exposed.
        expose_headers=[CSRF_HEADER],
    )

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(teams_router, prefix=settings.api_prefix)

    @app.get(f"{settings.api_prefix}/health", tags=["Health"])
    async def health():
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    return app


def run_server(
    settings: Settings | None = None,
    host: str | None = None,
    port: int | None = None,
    dev: bool = False,
) -> None:
    """Serve the reference API with uvicorn."""
    import uvicorn

    settings = settings or get_settings()
    host = host or settings.host
    port = port or settings.port

    logger.info(
        "Serving reference API on http://%s:%s%s (%s posture)",
        host,
        port,
        settings.api_prefix,
        settings.posture.value,
    )
    if dev:
        uvicorn.run(
            "sessionguard.server.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level="debug",
        )
    else:
        uvicorn.run(create_app(settings), host=host, port=port)
