"""Configuration for SessionGuard.

Settings are read from ``~/.sessionguard/config.json`` (if present) and from
``SESSIONGUARD_*`` environment variables.  The deployment posture is an explicit
value here rather than something inferred from build flags, so both the client and
the reference server branch on a typed parameter.
"""

from __future__ import annotations

import json
import logging
import os
from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Posture(StrEnum):
    """Whether client script can read the API's cookies."""

    SAME_ORIGIN = "same-origin"
    CROSS_ORIGIN = "cross-origin"


def get_config_dir() -> Path:
    """Get/create the config directory (``~/.sessionguard``)."""
    d = Path.home() / ".sessionguard"
    d.mkdir(exist_ok=True)
    return d


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """SessionGuard settings (client and reference server)."""

    model_config = SettingsConfigDict(env_prefix="SESSIONGUARD_", extra="ignore")

    # -- client --
    api_url: str = Field(default="http://localhost:3001/api", description="Backend API base URL")
    posture: Posture = Field(default=Posture.SAME_ORIGIN, description="Deployment posture")
    identity_endpoint: str = Field(
        default="/auth/me", description="Side-effect-free endpoint used to harvest tokens"
    )
    cookie_settle_delay: float = Field(
        default=0.1, description="Seconds to wait before reading the CSRF cookie fallback"
    )
    request_timeout: float = Field(default=30.0, description="Transport timeout in seconds")

    # -- reference server --
    host: str = "127.0.0.1"
    port: int = 3001
    api_prefix: str = "/api"
    frontend_url: str = "http://localhost:3000"
    secure_cookies: bool = False
    session_ttl_days: int = 7
    csrf_token_ttl_hours: int = 24
    csrf_token_window: int = Field(
        default=5, ge=1, description="Recently issued CSRF tokens accepted per session"
    )
    csrf_token_grace_seconds: float = Field(
        default=60, ge=0, description="Seconds every issued CSRF token stays accepted"
    )
    cleanup_interval_seconds: int = 3600

    log_level: str = "INFO"

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the config file, with env vars taking precedence."""
        path = get_config_path()
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", path, exc)
            return cls()
        # Explicit init kwargs win over env in pydantic-settings, so only pass keys
        # that are not set in the environment.
        prefix = cls.model_config["env_prefix"].upper()
        env_keys = {key.upper() for key in os.environ}
        return cls(**{k: v for k, v in data.items() if f"{prefix}{k.upper()}" not in env_keys})


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings instance."""
    return Settings.load()
