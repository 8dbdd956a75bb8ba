"""Session + CSRF aware HTTP client."""

from sessionguard.client.acquirer import TokenAcquirer
from sessionguard.client.api import ApiClient
from sessionguard.client.classifier import ResponseClassifier, Success
from sessionguard.client.cookie_reader import CookieReader
from sessionguard.client.dispatcher import AttemptState, RequestDescriptor, RequestDispatcher
from sessionguard.client.errors import (
    ApiError,
    CsrfRejected,
    HttpError,
    NetworkError,
    ProtocolError,
    TokenUnavailable,
)
from sessionguard.client.token_cache import TokenCache

__all__ = [
    "ApiClient",
    "ApiError",
    "AttemptState",
    "CookieReader",
    "CsrfRejected",
    "HttpError",
    "NetworkError",
    "ProtocolError",
    "RequestDescriptor",
    "RequestDispatcher",
    "ResponseClassifier",
    "Success",
    "TokenAcquirer",
    "TokenCache",
    "TokenUnavailable",
]
