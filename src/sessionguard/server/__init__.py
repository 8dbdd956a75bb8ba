"""Reference backend for the session + CSRF contract."""

from sessionguard.server.app import create_app, run_server

__all__ = ["create_app", "run_server"]
