"""Request dispatch with a single CSRF recovery cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from sessionguard.client.acquirer import TokenAcquirer
from sessionguard.client.classifier import ResponseClassifier, Success
from sessionguard.client.errors import CsrfRejected
from sessionguard.protocol import needs_csrf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call."""

    endpoint: str
    method: str = "GET"
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def needs_token(self) -> bool:
        return needs_csrf(self.method, self.endpoint)


class AttemptState(Enum):
    INITIAL = "initial"
    RETRIED = "retried"


class RequestDispatcher:
    """Composes headers, sends, classifies and retries once on a CSRF rejection.

    The retry is a two-state machine: only ``INITIAL`` may transition (to
    ``RETRIED``), so a logical call never produces more than two requests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        acquirer: TokenAcquirer,
        classifier: ResponseClassifier,
    ):
        self._client = client
        self._acquirer = acquirer
        self._classifier = classifier

    async def dispatch(self, descriptor: RequestDescriptor) -> Any:
        """Send *descriptor* and return the decoded JSON payload.

        Raises one of the ``ApiError`` subclasses on failure.
        """
        token = None
        if descriptor.needs_token:
            token = await self._acquirer.ensure_token(descriptor.endpoint)

        state = AttemptState.INITIAL
        while True:
            outcome = await self._send(descriptor, token)
            if isinstance(outcome, Success):
                return outcome.payload

            if (
                isinstance(outcome, CsrfRejected)
                and descriptor.needs_token
                and state is AttemptState.INITIAL
            ):
                logger.info(
                    "CSRF rejected for %s %s; re-acquiring token and retrying once",
                    descriptor.method,
                    descriptor.endpoint,
                )
                state = AttemptState.RETRIED
                token = await self._acquirer.acquire()
                continue

            raise outcome

    def build_headers(self, descriptor: RequestDescriptor, token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers[self._classifier.header_name] = token
        headers.update(descriptor.headers)
        return headers

    async def _send(self, descriptor: RequestDescriptor, token: str | None):
        request = self._client.build_request(
            descriptor.method.upper(),
            descriptor.endpoint,
            json=descriptor.body,
            headers=self.build_headers(descriptor, token),
        )
        try:
            response = await self._client.send(request)
        except httpx.TransportError as exc:
            return self._classifier.transport_failure(exc)

        outcome = self._classifier.classify(response)
        if not isinstance(outcome, Success):
            logger.debug(
                "%s %s failed: %s", descriptor.method, descriptor.endpoint, outcome.message
            )
        return outcome
