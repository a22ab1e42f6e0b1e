"""Centralized data client.

Feature layers route all outbound requests through one ``DataClient`` so that
caching, retry, timeout and cancellation are enforced uniformly:

- **Response Cache**: GET payloads keyed by URL, TTL expiry, FIFO eviction
- **Retry with Backoff**: Retryable statuses and transport failures (tenacity)
- **Timeouts**: A fresh window for every attempt
- **Cancellation**: ``cancel(request_id)`` / ``cancel_all()``
- **Normalized Errors**: Every failure is an ``ApiError``
- **Bus Events**: Lifecycle events published when an event bus is attached

For the JSON configuration format, see `config.py`.
"""

from .cache import CacheEntry, ResponseCache
from .cancellation import CancellationToken
from .client import DataClient, close_data_client, get_data_client
from .config import ApiConfig, CacheConfig, RetryConfig, load_api_config
from .errors import (
    ApiError,
    DuplicateRequestIdError,
    EndpointNotFoundError,
    HttpStatusError,
    NetworkError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseParseError,
    normalize_error,
)
from .models import ClientMetrics, ClientState

__all__ = [
    "ApiConfig",
    "ApiError",
    "CacheConfig",
    "CacheEntry",
    "CancellationToken",
    "ClientMetrics",
    "ClientState",
    "DataClient",
    "DuplicateRequestIdError",
    "EndpointNotFoundError",
    "HttpStatusError",
    "NetworkError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ResponseCache",
    "ResponseParseError",
    "RetryConfig",
    "close_data_client",
    "get_data_client",
    "load_api_config",
    "normalize_error",
]
