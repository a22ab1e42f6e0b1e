"""Centralized data client.

All outbound requests of the runtime's feature layers go through one
``DataClient`` so that caching, retry, timeout and cancellation policy are
applied uniformly.

## Request lifecycle

1. The full URL is built from the configured base URL, the endpoint and the
   query parameters.
2. ``GET`` requests are answered from the response cache when a live entry
   exists; no network call is made.
3. Otherwise the request runs in its own task, bound to a cancellation token
   registered under the request ID.
4. Each attempt gets a fresh timeout window. Retryable statuses and
   transport failures are retried with exponential backoff (tenacity);
   timeouts and cancellations are not.
5. The body is parsed by content type. Successful ``GET`` payloads are
   cached. Failures are normalized to ``ApiError``.
6. ``api:request-success`` or ``api:request-error`` is published on the
   event bus, if one is attached.

## Usage

```python
client = get_data_client()
articles = await client.get("/v1/articles", params={"section": "sports"})
await client.post("/v1/comments", {"article": 42, "text": "Great read"})

result = await client.graphql("query { trending { id title } }")
```

"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from functools import lru_cache
from typing import Any
from urllib.parse import urlencode

import httpx
from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from runtime_core.event_bus import EventBus, get_event_bus
from runtime_core.events import register_event_handlers, topics, unregister_event_handlers
from runtime_core.settings import get_settings
from runtime_core.utils.id_generator import generate_prefixed_id

from .cache import ResponseCache, monotonic_ms
from .cancellation import CancellationToken
from .config import ApiConfig, load_api_config
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

REQUEST_ID_PREFIX = "req"

Sleep = Callable[[float], Awaitable[None]]


class DataClient:
    """Network gateway with response caching, retry, timeout and cancellation.

    Example:
        ```python
        async with DataClient(load_api_config("api-config.json")) as client:
            client.set_auth_token(token)
            profile = await client.get("/v1/me")
        ```
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        *,
        event_bus: EventBus | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = monotonic_ms,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize a new DataClient.

        Args:
            config: Client configuration; defaults apply when omitted
            event_bus: Bus that receives lifecycle events (optional)
            transport: httpx transport for the internally created HTTP client
            http_client: Externally managed HTTP client (not closed by ``aclose``)
            clock: Millisecond clock used for cache expiry
            sleep: Coroutine used to wait between retries (seconds)
        """
        self._config = config or ApiConfig()
        self._cache = ResponseCache(self._config.cache, clock)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(transport=transport, follow_redirects=True)
        self._sleep = sleep
        self._event_bus = event_bus
        self._auth_token: str | None = None
        self._active: dict[str, CancellationToken] = {}

        self._total_requests = 0
        self._successful_requests = 0
        self._failed_requests = 0
        self._cached_responses = 0
        self._retried_requests = 0
        self._network_requests = 0
        self._avg_response_time_ms = 0.0

        logger.debug(f"DataClient initialized (base_url={self._config.base_url!r})")

    @property
    def config(self) -> ApiConfig:
        return self._config

    @property
    def event_bus(self) -> EventBus | None:
        return self._event_bus

    def attach_event_bus(self, event_bus: EventBus | None) -> None:
        """Set (or with None, remove) the bus that receives lifecycle events."""
        self._event_bus = event_bus

    # Requests

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        credentials: httpx.Auth | tuple[str, str] | None = None,
        request_id: str | None = None,
    ) -> Any:
        """Perform a request and return the parsed payload.

        Args:
            endpoint: Path relative to the base URL, or an absolute ``http(s)`` URL
            method: HTTP method
            headers: Extra headers, merged over the configured defaults
            params: Query parameters
            body: JSON-serializable value, or ``str``/``bytes`` sent as is (ignored for GET)
            credentials: httpx authentication for this request only
            request_id: ID to register the request under; generated when omitted.
                Must not belong to a request still in flight.

        Returns:
            The parsed response body

        Raises:
            ApiError: Normalized error for every failure, including cancellation
            DuplicateRequestIdError: If ``request_id`` is already in flight
        """
        request_id = request_id or generate_prefixed_id(REQUEST_ID_PREFIX)
        method = method.upper()
        url = self.build_url(endpoint, params)
        started = time.perf_counter()

        if method == "GET":
            entry = self._cache.lookup(url)
            if entry is not None:
                self._total_requests += 1
                self._successful_requests += 1
                self._cached_responses += 1
                logger.trace(f"Cache hit for {url}")
                return entry.payload

        if request_id in self._active:
            raise DuplicateRequestIdError(request_id)

        token = CancellationToken(request_id)
        self._active[request_id] = token
        try:
            payload = await self._execute(token, method, url, self._build_headers(headers), body, credentials)
        except ApiError as e:
            response_time_ms = (time.perf_counter() - started) * 1000
            self._record_outcome(False, response_time_ms)
            logger.warning(f"{method} {url} failed: {e.message} ({e.code})")
            self._emit(
                topics.API_REQUEST_ERROR,
                {
                    "request_id": request_id,
                    "endpoint": endpoint,
                    "method": method,
                    "error": e.to_dict(),
                    "response_time_ms": response_time_ms,
                },
            )
            raise
        finally:
            # A cancelled ID may already be reused by a newer request
            if self._active.get(request_id) is token:
                del self._active[request_id]

        if method == "GET":
            self._cache.store(url, payload)

        response_time_ms = (time.perf_counter() - started) * 1000
        self._record_outcome(True, response_time_ms)
        logger.debug(f"{method} {url} completed in {response_time_ms:.1f}ms")
        self._emit(
            topics.API_REQUEST_SUCCESS,
            {
                "request_id": request_id,
                "endpoint": endpoint,
                "method": method,
                "response_time_ms": response_time_ms,
            },
        )
        return payload

    async def get(self, endpoint: str, params: Mapping[str, Any] | None = None, **options: Any) -> Any:
        return await self.request(endpoint, method="GET", params=params, **options)

    async def post(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="POST", body=body, **options)

    async def put(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="PUT", body=body, **options)

    async def patch(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.request(endpoint, method="PATCH", body=body, **options)

    async def delete(self, endpoint: str, **options: Any) -> Any:
        return await self.request(endpoint, method="DELETE", **options)

    async def graphql(self, query: str, variables: Mapping[str, Any] | None = None, **options: Any) -> Any:
        """POST a GraphQL query to the configured GraphQL endpoint."""
        payload = {"query": query, "variables": dict(variables or {})}
        return await self.post(self._config.graphql_endpoint, payload, **options)

    async def call_endpoint(self, name: str, **options: Any) -> Any:
        """Request a named endpoint from the configuration.

        Raises:
            EndpointNotFoundError: If the name is not configured
        """
        endpoint = self._config.endpoints.get(name)
        if endpoint is None:
            raise EndpointNotFoundError(name)
        return await self.request(endpoint, **options)

    def build_url(self, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        """Resolve an endpoint and query parameters into the full request URL."""
        url = endpoint if endpoint.startswith(("http://", "https://")) else self._config.base_url + endpoint
        if params:
            url += ("&" if "?" in url else "?") + urlencode(params, doseq=True)
        return url

    # Credentials

    @property
    def auth_token(self) -> str | None:
        return self._auth_token

    def set_auth_token(self, token: str | None) -> None:
        """Use ``token`` as bearer token for every subsequent request."""
        self._auth_token = token or None
        logger.debug(f"Auth token {'set' if self._auth_token else 'reset'}")
        self._emit(topics.API_AUTH_TOKEN_SET, {"has_token": self._auth_token is not None})

    def clear_auth_token(self) -> None:
        self._auth_token = None
        logger.debug("Auth token cleared")
        self._emit(topics.API_AUTH_TOKEN_CLEARED, {})

    # Cancellation

    def active_requests(self) -> list[str]:
        """IDs of requests currently in flight."""
        return list(self._active)

    def cancel(self, request_id: str) -> bool:
        """Cancel one in-flight request.

        The request's caller receives ``RequestCancelledError``.

        Returns:
            True if a request with this ID was in flight
        """
        token = self._active.pop(request_id, None)
        if token is None:
            return False

        token.cancel()
        logger.debug(f"Request {request_id} cancelled")
        self._emit(topics.API_REQUEST_CANCELLED, {"request_id": request_id})
        return True

    def cancel_all(self) -> int:
        """Cancel every in-flight request and return how many were cancelled."""
        tokens = list(self._active.values())
        self._active.clear()
        for token in tokens:
            token.cancel()

        logger.debug(f"Cancelled {len(tokens)} in-flight request(s)")
        self._emit(topics.API_ALL_REQUESTS_CANCELLED, {"count": len(tokens)})
        return len(tokens)

    # Diagnostics

    def clear_cache(self, key: str | None = None) -> None:
        """Drop one cached URL, or the whole cache."""
        self._cache.invalidate(key)
        logger.debug(f"Cache cleared ({key or 'all entries'})")
        self._emit(topics.API_CACHE_CLEARED, {"key": key})

    def get_metrics(self) -> ClientMetrics:
        """Return a snapshot of the request counters."""
        total = self._total_requests
        return ClientMetrics(
            total_requests=total,
            successful_requests=self._successful_requests,
            failed_requests=self._failed_requests,
            cached_responses=self._cached_responses,
            retried_requests=self._retried_requests,
            avg_response_time_ms=self._avg_response_time_ms,
            success_rate=round(self._successful_requests / total * 100) if total else 0,
            cache_hit_rate=round(self._cached_responses / total * 100) if total else 0,
        )

    def get_state(self) -> ClientState:
        return ClientState(
            base_url=self._config.base_url,
            has_auth_token=self._auth_token is not None,
            cache_size=len(self._cache),
            active_requests=len(self._active),
            metrics=self.get_metrics(),
        )

    # Lifecycle

    async def aclose(self) -> None:
        """Cancel in-flight requests, clear the cache and close the owned HTTP client."""
        if self._active:
            self.cancel_all()
        self._cache.invalidate()
        if self._owns_http:
            await self._http.aclose()
        logger.debug("DataClient closed")

    async def __aenter__(self) -> "DataClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Internals

    async def _execute(
        self,
        token: CancellationToken,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Any,
        credentials: httpx.Auth | tuple[str, str] | None,
    ) -> Any:
        """Run the retrying send in its own task so the token can cancel it."""
        task = asyncio.ensure_future(self._send_with_retry(method, url, headers, body, credentials))
        token.bind(task)
        try:
            payload = await task
        except asyncio.CancelledError:
            if token.cancelled:
                raise RequestCancelledError("Request cancelled") from None
            raise
        except Exception as e:
            if token.cancelled:
                raise RequestCancelledError("Request cancelled") from None
            if isinstance(e, ApiError):
                raise
            raise normalize_error(e) from e

        # Cancellation wins over a response that arrived first
        if token.cancelled:
            raise RequestCancelledError("Request cancelled")
        return payload

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Any,
        credentials: httpx.Auth | tuple[str, str] | None,
    ) -> Any:
        retry_config = self._config.retry
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retry_config.max_retries + 1),
            wait=self._backoff,
            retry=retry_if_exception(self._is_retryable),
            before_sleep=self._before_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(self._send_once, method, url, headers, body, credentials)

    async def _send_once(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Any,
        credentials: httpx.Auth | tuple[str, str] | None,
    ) -> Any:
        kwargs: dict[str, Any] = {"headers": headers}
        if credentials is not None:
            kwargs["auth"] = credentials
        if body is not None and method != "GET":
            if isinstance(body, str | bytes):
                kwargs["content"] = body
            else:
                kwargs["json"] = body

        logger.trace(f"{method} {url}")
        try:
            async with asyncio.timeout(self._config.timeout / 1000):
                response = await self._http.request(method, url, **kwargs)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(f"Request timeout after {self._config.timeout}ms") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error: {e}") from e

        if not response.is_success:
            raise HttpStatusError(f"HTTP {response.status_code}: {response.reason_phrase}", status=response.status_code)

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> Any:
        """Decode the body according to its content type (JSON by default)."""
        content_type = response.headers.get("content-type", "").lower()

        if "text/" in content_type:
            return response.text
        if "application/octet-stream" in content_type:
            return response.content
        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f"Invalid JSON response: {e}", status=response.status_code) from e

    def _is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, NetworkError):
            return True
        return isinstance(error, HttpStatusError) and error.status in self._config.retry.retry_on

    def _backoff(self, retry_state: RetryCallState) -> float:
        """Seconds to wait after the given failed attempt."""
        return self._config.retry.delay_before(retry_state.attempt_number) / 1000

    def _before_retry(self, retry_state: RetryCallState) -> None:
        self._retried_requests += 1
        delay_ms = retry_state.next_action.sleep * 1000 if retry_state.next_action else 0
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.info(
            f"Retrying request ({retry_state.attempt_number}/{self._config.retry.max_retries}) "
            f"after {delay_ms:.0f}ms: {error}"
        )

    def _build_headers(self, headers: Mapping[str, str] | None) -> httpx.Headers:
        # Header names are case-insensitive; a caller's content-type replaces the default Content-Type
        merged = httpx.Headers(self._config.headers)
        merged.update(headers or {})
        if self._auth_token:
            merged["Authorization"] = f"Bearer {self._auth_token}"
        return merged

    def _record_outcome(self, success: bool, response_time_ms: float) -> None:
        self._total_requests += 1
        if success:
            self._successful_requests += 1
        else:
            self._failed_requests += 1

        self._network_requests += 1
        n = self._network_requests
        self._avg_response_time_ms = (self._avg_response_time_ms * (n - 1) + response_time_ms) / n

    def _emit(self, topic: str, payload: dict[str, Any]) -> None:
        """Publish on the attached bus, if any; bus problems never reach the caller."""
        event_bus = self._event_bus
        if event_bus is None:
            return
        try:
            event_bus.publish(topic, payload)
        except Exception as e:
            logger.warning(f"Could not publish '{topic}': {e}")


@lru_cache
def get_data_client() -> DataClient:
    """Get or create the process-wide DataClient.

    The client is configured from the file named by ``api_config_path`` in
    the settings and wired to the process event bus.

    Returns:
        The DataClient instance
    """
    settings = get_settings()
    client = DataClient(load_api_config(settings.api_config_path))
    register_event_handlers(get_event_bus(), client)
    return client


async def close_data_client() -> None:
    """Close the process-wide DataClient and forget it.

    The client is unwired from the event bus first, so the next
    ``get_data_client()`` builds a fresh client without duplicate handlers.
    Does nothing if no process-wide client has been created.
    """
    if get_data_client.cache_info().currsize == 0:
        return

    client = get_data_client()
    get_data_client.cache_clear()
    if client.event_bus is not None:
        unregister_event_handlers(client.event_bus, client)
    await client.aclose()
