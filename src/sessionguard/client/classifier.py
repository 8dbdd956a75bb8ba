"""Response classification.

Every completed response is mapped in one step to either ``Success`` or one of the
typed errors from ``errors``.  Before the outcome is returned, any rotated token found
in the response headers is pushed into the token cache, whether the response is a
success or a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from sessionguard.client.errors import (
    ApiError,
    CsrfRejected,
    HttpError,
    NetworkError,
    ProtocolError,
    http_status_message,
)
from sessionguard.client.token_cache import TokenCache
from sessionguard.protocol import CSRF_HEADER, is_forgery_rejection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    """2xx response with a decoded JSON payload."""

    payload: Any
    status_code: int = 200


Outcome = Success | ApiError


class ResponseClassifier:
    def __init__(self, cache: TokenCache, header_name: str = CSRF_HEADER):
        self._cache = cache
        self.header_name = header_name

    def capture(self, response: httpx.Response) -> str | None:
        """Store the rotated token from *response* (if any) and return it."""
        token = response.headers.get(self.header_name)
        if token:
            self._cache.set(token)
            return token
        return None

    def transport_failure(self, exc: Exception) -> NetworkError:
        logger.warning("Request never completed: %s", exc)
        error = NetworkError()
        error.__cause__ = exc
        return error

    def classify(self, response: httpx.Response) -> Outcome:
        self.capture(response)
        status = response.status_code

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            if response.is_success:
                message = f"Expected a JSON response but got '{content_type or 'no content type'}'"
            else:
                message = http_status_message(status)
            return ProtocolError(message, status_code=status)

        try:
            payload = response.json()
        except ValueError:
            message = f"Malformed JSON in response (status {status})"
            return ProtocolError(message, status_code=status)

        if not response.is_success:
            error = payload.get("error") if isinstance(payload, dict) else None
            message = error if isinstance(error, str) and error else None
            if status == 403 and is_forgery_rejection(message):
                return CsrfRejected(message, status_code=status)
            return HttpError(message or http_status_message(status), status_code=status)

        return Success(payload, status)
