"""API client facade: ``get`` / ``post`` / ``put`` / ``patch`` / ``delete``.

Owns the ``httpx.AsyncClient`` whose cookie jar carries the HttpOnly session cookie
(the equivalent of a browser's credentialed requests) and wires the token cache,
cookie reader, token acquirer, response classifier and request dispatcher together.

Usage::

    async with ApiClient.from_settings(get_settings()) as api:
        team = await api.post("/teams", {"name": "U12 Blue"})
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from sessionguard.client.acquirer import TokenAcquirer
from sessionguard.client.classifier import ResponseClassifier
from sessionguard.client.cookie_reader import CookieReader
from sessionguard.client.dispatcher import RequestDescriptor, RequestDispatcher
from sessionguard.client.errors import ProtocolError
from sessionguard.client.token_cache import TokenCache
from sessionguard.config import Posture, Settings

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        posture: Posture | str = Posture.SAME_ORIGIN,
        identity_endpoint: str = "/auth/me",
        settle_delay: float = 0.1,
        timeout: float = 30.0,
        cache: TokenCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.posture = Posture(posture)
        self.cache = cache if cache is not None else TokenCache()
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

        # Cross-origin script cannot read the API's cookies.
        readable = self._http.cookies if self.posture is Posture.SAME_ORIGIN else None
        self.cookies = CookieReader(readable)
        self.classifier = ResponseClassifier(self.cache)
        self.acquirer = TokenAcquirer(
            self._http,
            self.cache,
            self.classifier,
            self.cookies,
            posture=self.posture,
            identity_endpoint=identity_endpoint,
            settle_delay=settle_delay,
        )
        self.dispatcher = RequestDispatcher(self._http, self.acquirer, self.classifier)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> ApiClient:
        return cls(
            settings.api_url,
            posture=settings.posture,
            identity_endpoint=settings.identity_endpoint,
            settle_delay=settings.cookie_settle_delay,
            timeout=settings.request_timeout,
            transport=transport,
        )

    # -- lifecycle --

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- requests --

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        response_model: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        descriptor = RequestDescriptor(
            endpoint=endpoint,
            method=method.upper(),
            body=body,
            headers=dict(headers or {}),
        )
        payload = await self.dispatcher.dispatch(descriptor)
        if response_model is None:
            return payload
        try:
            return TypeAdapter(response_model).validate_python(payload)
        except ValidationError as exc:
            raise ProtocolError(
                f"Unexpected response shape from {method.upper()} {endpoint}: "
                f"{exc.error_count()} validation error(s)"
            ) from exc

    async def get(self, endpoint: str, *, response_model: Any = None) -> Any:
        return await self.request("GET", endpoint, response_model=response_model)

    async def post(self, endpoint: str, body: Any = None, *, response_model: Any = None) -> Any:
        return await self.request("POST", endpoint, body, response_model=response_model)

    async def put(self, endpoint: str, body: Any = None, *, response_model: Any = None) -> Any:
        return await self.request("PUT", endpoint, body, response_model=response_model)

    async def patch(self, endpoint: str, body: Any = None, *, response_model: Any = None) -> Any:
        return await self.request("PATCH", endpoint, body, response_model=response_model)

    async def delete(self, endpoint: str, *, response_model: Any = None) -> Any:
        return await self.request("DELETE", endpoint, response_model=response_model)

    async def logout(self, endpoint: str = "/auth/logout") -> Any:
        """End the server session and reset the token cache."""
        try:
            return await self.post(endpoint)
        finally:
            self.cache.clear()
            logger.debug("Token cache cleared after logout")
