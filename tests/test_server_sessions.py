# Tests for server/sessions.py and server/users.py

from datetime import UTC, datetime, timedelta

import bcrypt
import pytest

from sessionguard.server.sessions import Session, SessionStore
from sessionguard.server.users import UserDirectory, hash_password, verify_password


class TestSessionStore:
    def test_create_and_get(self):
        store = SessionStore()
        session = store.create(user_id=3)
        assert len(session.id) == 64
        assert store.get(session.id) is session
        assert len(store) == 1

    def test_unknown_and_empty_ids(self):
        store = SessionStore()
        assert store.get("missing") is None
        assert store.get(None) is None
        assert store.get("") is None

    def test_get_refreshes_activity(self):
        store = SessionStore()
        session = store.create(1)
        session.last_activity_at -= timedelta(hours=1)
        before = session.last_activity_at
        store.get(session.id)
        assert session.last_activity_at > before

    def test_expired_session_is_invalid(self):
        store = SessionStore(ttl=timedelta(seconds=-1))
        session = store.create(1)
        assert store.get(session.id) is None

    def test_delete_revokes(self):
        store = SessionStore()
        session = store.create(1)
        assert store.delete(session.id) is True
        assert session.revoked
        assert store.get(session.id) is None
        assert store.delete(session.id) is False

    def test_delete_user_sessions(self):
        store = SessionStore()
        a, b = store.create(1), store.create(1)
        other = store.create(2)
        assert store.delete_user_sessions(1) == 2
        assert store.get(a.id) is None
        assert store.get(b.id) is None
        assert store.get(other.id) is other

    def test_cleanup_expired(self):
        store = SessionStore()
        live = store.create(1)
        stale = store.create(2)
        stale.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        assert store.cleanup_expired() == 1
        assert len(store) == 1
        assert store.get(live.id) is live

    def test_session_validity(self):
        now = datetime.now(UTC)
        session = Session(id="x", user_id=1, expires_at=now + timedelta(minutes=5))
        assert session.is_valid(now)
        assert not session.is_valid(now + timedelta(minutes=6))
        session.revoked = True
        assert not session.is_valid(now)


class TestPasswords:
    def test_hash_roundtrip(self):
        stored = hash_password("hunter2")
        assert verify_password("hunter2", stored)
        assert not verify_password("hunter3", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_bcrypt_format(self):
        stored = hash_password("hunter2")
        assert stored.startswith("$2b$04$")
        assert bcrypt.checkpw(b"hunter2", stored.encode())

    def test_overlong_password(self):
        with pytest.raises(ValueError, match="at most 72 bytes"):
            hash_password("x" * 73)
        assert not verify_password("x" * 73, hash_password("x" * 72))


class TestUserDirectory:
    @pytest.fixture
    def users(self):
        users = UserDirectory()
        users.create("Coach@Example.com", "pw", "Coach")
        return users

    def test_email_is_normalized(self, users):
        assert users.find_by_email("  coach@example.COM ") is not None

    def test_duplicate_email(self, users):
        with pytest.raises(ValueError, match="already registered"):
            users.create("coach@example.com", "x", "Again")

    def test_authenticate(self, users):
        assert users.authenticate("coach@example.com", "pw") is not None
        assert users.authenticate("coach@example.com", "bad") is None
        assert users.authenticate("nobody@example.com", "pw") is None

    def test_public_view_hides_secrets(self, users):
        public = users.get(1).public()
        assert set(public) == {"id", "email", "name", "role", "emailVerified"}

    def test_verify_email_token_is_single_use(self, users):
        token = users.get(1).verification_token
        assert users.verify_email(token) is True
        assert users.get(1).email_verified
        assert users.verify_email(token) is False

    def test_reset_password(self, users):
        token = users.create_reset_token("coach@example.com")
        assert users.reset_password(token, "new-pw") is not None
        assert users.authenticate("coach@example.com", "new-pw") is not None
        assert users.reset_password(token, "again") is None

    def test_reset_token_expires(self, users):
        token = users.create_reset_token("coach@example.com")
        users.get(1).reset_expires_at = datetime.now(UTC) - timedelta(seconds=1)
        assert users.reset_password(token, "new-pw") is None

    def test_reset_token_unknown_email(self, users):
        assert users.create_reset_token("ghost@example.com") is None

    def test_change_password(self, users):
        with pytest.raises(ValueError):
            users.change_password(1, "wrong", "new")
        with pytest.raises(LookupError):
            users.change_password(99, "pw", "new")
        users.change_password(1, "pw", "new")
        assert users.authenticate("coach@example.com", "new") is not None
