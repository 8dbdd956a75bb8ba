# Minimal in-memory user directory backing the auth routes.
#
# Password policy, roles and durable storage belong to the real backend; this only
# keeps enough state to log in, verify e-mail and reset or change a password.

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from itertools import count

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
# bcrypt only reads this many bytes of the secret.
MAX_PASSWORD_BYTES = 72
RESET_TOKEN_TTL = timedelta(hours=1)


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Validate a plaintext password against a stored hash."""
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(secret, hashed.encode("utf-8"))


@dataclass
class User:
    id: int
    email: str
    name: str
    password_hash: str
    role: str = "viewer"
    email_verified: bool = False
    verification_token: str | None = None
    reset_token: str | None = None
    reset_expires_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "emailVerified": self.email_verified,
        }


class UserDirectory:
    def __init__(self):
        self._users: dict[int, User] = {}
        self._ids = count(1)

    def has_users(self) -> bool:
        return bool(self._users)

    def create(self, email: str, password: str, name: str, role: str = "viewer") -> User:
        email = email.strip().lower()
        if self.find_by_email(email) is not None:
            raise ValueError("Email already registered")
        user = User(
            id=next(self._ids),
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=role,
            verification_token=secrets.token_urlsafe(32),
        )
        self._users[user.id] = user
        logger.info("Created user %s (%s)", user.id, role)
        return user

    def get(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def authenticate(self, email: str, password: str) -> User | None:
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    def verify_email(self, token: str) -> bool:
        for user in self._users.values():
            if user.verification_token and hmac.compare_digest(user.verification_token, token):
                user.email_verified = True
                user.verification_token = None
                return True
        return False

    def create_reset_token(self, email: str) -> str | None:
        """Issue a one-hour password reset token; None if the e-mail is unknown."""
        user = self.find_by_email(email)
        if user is None:
            return None
        user.reset_token = secrets.token_urlsafe(32)
        user.reset_expires_at = datetime.now(UTC) + RESET_TOKEN_TTL
        return user.reset_token

    def reset_password(self, token: str, new_password: str) -> User | None:
        now = datetime.now(UTC)
        for user in self._users.values():
            if (
                user.reset_token
                and user.reset_expires_at
                and user.reset_expires_at > now
                and hmac.compare_digest(user.reset_token, token)
            ):
                user.password_hash = hash_password(new_password)
                user.reset_token = None
                user.reset_expires_at = None
                return user
        return None

    def change_password(self, user_id: int, current: str, new: str) -> None:
        user = self._users.get(user_id)
        if user is None:
            raise LookupError("User not found")
        if not verify_password(current, user.password_hash):
            raise ValueError("Current password is incorrect")
        user.password_hash = hash_password(new)
