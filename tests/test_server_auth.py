# Tests for the reference API's auth and teams routers.

import pytest
from conftest import COACH_EMAIL, COACH_PASSWORD
from fastapi.testclient import TestClient

from sessionguard.protocol import CSRF_HEADER, SESSION_COOKIE
from sessionguard.server import create_app


@pytest.fixture
def client(app):
    return TestClient(app)


class Session:
    """TestClient wrapper that replays the latest rotated token like a browser would."""

    def __init__(self, client: TestClient):
        self.client = client
        self.token = None

    def call(self, method: str, path: str, **kwargs):
        headers = kwargs.pop("headers", {})
        if self.token:
            headers.setdefault(CSRF_HEADER, self.token)
        resp = self.client.request(method, path, headers=headers, **kwargs)
        self.token = resp.headers.get(CSRF_HEADER, self.token)
        return resp


@pytest.fixture
def session(client):
    s = Session(client)
    body = {"email": COACH_EMAIL, "password": COACH_PASSWORD}
    resp = s.call("POST", "/api/auth/login", json=body)
    assert resp.status_code == 200
    return s


class TestLogin:
    def test_success(self, client):
        resp = client.post(
            "/api/auth/login", json={"email": COACH_EMAIL, "password": COACH_PASSWORD}
        )
        data = resp.json()
        assert resp.status_code == 200
        assert data["user"]["email"] == COACH_EMAIL
        assert data["user"]["role"] == "coach"
        assert "expiresAt" in data
        assert SESSION_COOKIE in resp.cookies
        assert resp.headers[CSRF_HEADER]

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": COACH_EMAIL})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email and password required"}

    def test_wrong_password(self, client):
        resp = client.post("/api/auth/login", json={"email": COACH_EMAIL, "password": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid email or password"}
        assert CSRF_HEADER not in resp.headers

    def test_malformed_json(self, client):
        resp = client.post(
            "/api/auth/login", content=b"not-json", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400


class TestIdentity:
    def test_me(self, session):
        resp = session.call("GET", "/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["emailVerified"] is False

    def test_me_without_session(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": "No session provided"}


class TestLogout:
    def test_logout_ends_session(self, session):
        assert session.call("POST", "/api/auth/logout").status_code == 200
        assert session.call("GET", "/api/auth/me").status_code == 401

    def test_delete_own_session(self, session):
        resp = session.call("DELETE", "/api/sessions/self")
        assert resp.json()["success"] is True
        assert session.call("GET", "/api/auth/me").status_code == 401


class TestSetup:
    def test_setup_once(self, settings):
        client = TestClient(create_app(settings))
        assert client.get("/api/auth/setup-required").json() == {"setupRequired": True}

        body = {"email": "admin@example.com", "password": "pw", "name": "Admin"}
        resp = client.post("/api/auth/setup", json=body)
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"

        again = client.post("/api/auth/setup", json=body, headers={CSRF_HEADER: "ignored"})
        assert again.status_code == 400
        assert again.json() == {"error": "Setup already completed"}

    def test_setup_rejects_overlong_password(self, settings):
        client = TestClient(create_app(settings))
        body = {"email": "admin@example.com", "password": "p" * 100, "name": "Admin"}
        resp = client.post("/api/auth/setup", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Password must be at most 72 bytes"}

    def test_setup_requires_fields(self, settings):
        client = TestClient(create_app(settings))
        resp = client.post("/api/auth/setup", json={"email": "a@b.c"})
        assert resp.status_code == 400


class TestEmailAndPasswordReset:
    def test_verify_email(self, client, app):
        token = app.state.users.find_by_email(COACH_EMAIL).verification_token
        assert client.post("/api/auth/verify-email", json={"token": token}).status_code == 200
        resp = client.post("/api/auth/verify-email", json={"token": token})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid or expired token"}

    def test_reset_request_does_not_reveal_accounts(self, client):
        known = client.post("/api/auth/request-password-reset", json={"email": COACH_EMAIL})
        unknown = client.post("/api/auth/request-password-reset", json={"email": "x@y.z"})
        assert known.json() == unknown.json()

    def test_reset_revokes_sessions(self, session, app):
        token = app.state.users.create_reset_token(COACH_EMAIL)
        other = TestClient(app)
        resp = other.post("/api/auth/reset-password", json={"token": token, "password": "fresh"})
        assert resp.status_code == 200
        assert session.call("GET", "/api/auth/me").status_code == 401

    def test_reset_with_bad_token(self, client):
        resp = client.post("/api/auth/reset-password", json={"token": "bogus", "password": "x"})
        assert resp.status_code == 400


class TestChangePassword:
    def test_wrong_current_password(self, session):
        resp = session.call(
            "POST",
            "/api/auth/change-password",
            json={"currentPassword": "nope", "newPassword": "new"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Current password is incorrect"}

    def test_change_logs_everyone_out(self, session):
        resp = session.call(
            "POST",
            "/api/auth/change-password",
            json={"currentPassword": COACH_PASSWORD, "newPassword": "new"},
        )
        assert resp.status_code == 200
        assert session.call("GET", "/api/auth/me").status_code == 401


class TestTeams:
    def test_crud(self, session):
        created = session.call("POST", "/api/teams", json={"name": "U10", "ageGroup": "U10"})
        assert created.status_code == 201
        team = created.json()
        assert team["ageGroup"] == "U10"

        updated = session.call("PUT", f"/api/teams/{team['id']}", json={"name": "U11"})
        assert updated.json()["name"] == "U11"

        assert len(session.call("GET", "/api/teams").json()) == 1
        assert session.call("DELETE", f"/api/teams/{team['id']}").status_code == 200
        assert session.call("GET", "/api/teams").json() == []

    def test_update_missing_team(self, session):
        resp = session.call("PUT", "/api/teams/42", json={"name": "x"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Team not found"}


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
