"""SessionGuard entry point.

Examples:
  sessionguard serve                         Serve the reference API on :3001
  sessionguard serve --posture cross-origin  Cross-origin cookies (SameSite=None; Secure)
  sessionguard me --api-url http://localhost:3001/api --email coach@example.com
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from sessionguard.config import Posture, get_settings
from sessionguard.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return get_version("sessionguard")
    except PackageNotFoundError:
        return "unknown"


async def _show_identity(settings, email: str | None = None, password: str | None = None) -> int:
    from sessionguard.client import ApiClient, ApiError

    async with ApiClient.from_settings(settings) as api:
        try:
            if email:
                await api.post("/auth/login", {"email": email, "password": password or ""})
            user = await api.get(settings.identity_endpoint)
            if email:
                await api.logout()
        except ApiError as exc:
            print(f"{type(exc).__name__}: {exc.message}", file=sys.stderr)
            return 1
    print(json.dumps(user, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sessionguard",
        description="Session + CSRF aware API client and reference backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("--log-level", default=None, help="Logging level (default: from settings)")
    parser.add_argument(
        "--posture",
        choices=[p.value for p in Posture],
        default=None,
        help="Deployment posture (default: from settings)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the reference API server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--dev", action="store_true", help="Auto-reload on code changes")

    me = sub.add_parser("me", help="Call the identity endpoint and print the result")
    me.add_argument("--api-url", default=None, help="Backend API base URL")
    me.add_argument("--email", default=None, help="Log in as this user first")
    me.add_argument(
        "--password", default=None, help="Password for --email (prompted if omitted)"
    )

    args = parser.parse_args(argv)

    settings = get_settings()
    overrides = {}
    if args.posture:
        overrides["posture"] = Posture(args.posture)
    if getattr(args, "api_url", None):
        overrides["api_url"] = args.api_url
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logging(level=args.log_level or settings.log_level)

    if args.command == "serve":
        from sessionguard.server import run_server

        run_server(settings, host=args.host, port=args.port, dev=args.dev)
        return 0

    password = args.password
    if args.email and password is None:
        password = getpass.getpass(f"Password for {args.email}: ")
    return asyncio.run(_show_identity(settings, args.email, password))


if __name__ == "__main__":
    sys.exit(main())
