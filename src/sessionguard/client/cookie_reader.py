"""Best-effort read of the cookie-mirrored CSRF token.

Only meaningful when the client shares an origin with the API. Under cross-origin
isolation the reader is built without a jar and always returns ``None``.
"""

from __future__ import annotations

import urllib.parse

import httpx

from sessionguard.protocol import CSRF_COOKIE


class CookieReader:
    def __init__(self, cookies: httpx.Cookies | None, name: str = CSRF_COOKIE):
        self._cookies = cookies
        self.name = name

    def read(self) -> str | None:
        """Return the decoded cookie value, or None if absent or unreadable."""
        if self._cookies is None:
            return None

        value = None
        # Same name may exist for several paths/domains; last match wins.
        for cookie in self._cookies.jar:
            if cookie.name == self.name and cookie.value:
                value = cookie.value
        if value is None:
            return None
        return urllib.parse.unquote(value) or None
