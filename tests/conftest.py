# Shared fixtures: scripted httpx transports and the reference app.

from __future__ import annotations

import httpx
import pytest

from sessionguard.client import ApiClient
from sessionguard.config import Posture, Settings
from sessionguard.protocol import CSRF_HEADER
from sessionguard.server import create_app, users
from sessionguard.server.rate_limiter import (
    login_limiter,
    password_reset_limiter,
    verification_limiter,
)

COACH_EMAIL = "coach@example.com"
COACH_PASSWORD = "correct horse battery"


def json_response(status: int, payload, token: str | None = None, **kwargs) -> httpx.Response:
    headers = kwargs.pop("headers", {})
    if token:
        headers[CSRF_HEADER] = token
    return httpx.Response(status, json=payload, headers=headers, **kwargs)


class RecordingTransport(httpx.AsyncBaseTransport):
    """Delegates to another transport and remembers every request sent."""

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await self.inner.handle_async_request(request)

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def count(self, method: str, path: str) -> int:
        return self.calls().count((method, path))


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    monkeypatch.setattr(users, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def _reset_rate_limiters():
    for limiter in (login_limiter, password_reset_limiter, verification_limiter):
        limiter.reset()
    yield


@pytest.fixture
def settings():
    return Settings(cookie_settle_delay=0, api_prefix="/api")


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.state.users.create(COACH_EMAIL, COACH_PASSWORD, "Coach Carter", role="coach")
    return app


def make_client(app, *, posture=Posture.SAME_ORIGIN) -> tuple[ApiClient, RecordingTransport]:
    """ApiClient wired to the in-process reference app."""
    transport = RecordingTransport(
        httpx.ASGITransport(app=app, client=("127.0.0.1", 50000))
    )
    # Cross-origin cookies are Secure, so the jar only sends them over https.
    scheme = "https" if posture is Posture.CROSS_ORIGIN else "http"
    api = ApiClient(
        f"{scheme}://testserver/api",
        posture=posture,
        settle_delay=0,
        transport=transport,
    )
    return api, transport


async def login(api: ApiClient, email: str = COACH_EMAIL, password: str = COACH_PASSWORD):
    return await api.post("/auth/login", {"email": email, "password": password})
