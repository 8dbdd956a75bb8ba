"""Token acquisition ahead of state-changing requests."""

from __future__ import annotations

import asyncio
import logging

import httpx

from sessionguard.client.classifier import ResponseClassifier
from sessionguard.client.cookie_reader import CookieReader
from sessionguard.client.errors import HttpError, TokenUnavailable
from sessionguard.client.token_cache import TokenCache
from sessionguard.config import Posture
from sessionguard.protocol import is_csrf_exempt

logger = logging.getLogger(__name__)


class TokenAcquirer:
    """Guarantees a usable anti-forgery token exists before a request is sent.

    Tokens are harvested from the response header of a credentialed, side-effect-free
    identity check.  In ``same-origin`` posture a readable cookie is the fallback when
    the header is missing; in ``cross-origin`` posture there is no fallback and the
    cached token is never trusted (another tab may have rotated it server-side).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TokenCache,
        classifier: ResponseClassifier,
        cookies: CookieReader,
        *,
        posture: Posture = Posture.SAME_ORIGIN,
        identity_endpoint: str = "/auth/me",
        settle_delay: float = 0.1,
    ):
        self._client = client
        self._cache = cache
        self._classifier = classifier
        self._cookies = cookies
        self.posture = Posture(posture)
        self.identity_endpoint = identity_endpoint
        self.settle_delay = settle_delay

    async def ensure_token(self, endpoint: str) -> str | None:
        """Return a token for a request to *endpoint*, fetching one if needed.

        Exempt endpoints get ``None`` without any round trip.
        """
        if is_csrf_exempt(endpoint):
            return None

        cached = self._cache.get()
        if cached is not None and self.posture is Posture.SAME_ORIGIN:
            return cached
        return await self.acquire()

    async def acquire(self) -> str:
        """Harvest a fresh token, bypassing the cache.

        Raises ``TokenUnavailable`` if neither the header nor (same-origin only) the
        cookie yields one, ``HttpError`` if the identity check was rejected with 401,
        and ``NetworkError`` if the identity check never completed.
        """
        try:
            response = await self._client.get(self.identity_endpoint)
        except httpx.TransportError as exc:
            raise self._classifier.transport_failure(exc) from exc

        outcome = self._classifier.classify(response)
        token = response.headers.get(self._classifier.header_name)
        if token:
            return token

        if isinstance(outcome, HttpError) and outcome.is_auth_error:
            logger.info("Identity check rejected (401); session is no longer valid")
            raise outcome

        if self.posture is Posture.CROSS_ORIGIN:
            logger.error("Identity check returned no CSRF header in cross-origin posture")
            raise TokenUnavailable()

        # The cookie may be set slightly after the header would have been.
        await asyncio.sleep(self.settle_delay)
        token = self._cookies.read()
        if token is None:
            logger.error("No CSRF token in header or cookie")
            raise TokenUnavailable()

        logger.debug("Using cookie-mirrored CSRF token")
        self._cache.set(token)
        return token
