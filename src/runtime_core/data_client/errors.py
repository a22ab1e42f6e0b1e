"""Normalized errors raised by the data client.

Every failure that reaches a data client caller is an ``ApiError`` carrying
the same four fields (message, status, code, timestamp), whatever the
underlying cause. Subclasses let callers tell the causes apart with
``except``:

```python
try:
    trending = await client.get("/v1/trending")
except RequestCancelledError:
    return
except ApiError as e:
    logger.warning(f"Trending unavailable: {e.to_dict()}")
```

"""

from typing import Any

import arrow


class ApiError(Exception):
    """Base class for all data client failures."""

    default_code = "UNKNOWN_ERROR"

    def __init__(self, message: str, status: int | None = None, code: str | None = None):
        self.message = message or "Unknown error"
        self.status = status
        self.code = code or self.default_code
        self.timestamp = arrow.utcnow().isoformat()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the normalized error shape."""
        return {
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status={self.status!r}, code={self.code!r})"


class HttpStatusError(ApiError):
    """Raised for a non-2xx response that is not (or no longer) retried."""

    default_code = "HTTP_ERROR"


class NetworkError(ApiError):
    """Raised when the transport fails before a response is received."""

    default_code = "NETWORK_ERROR"


class RequestTimeoutError(ApiError):
    """Raised when an attempt exceeds the configured timeout."""

    default_code = "TIMEOUT"


class RequestCancelledError(ApiError):
    """Raised when a request is cancelled through its request ID."""

    default_code = "REQUEST_CANCELLED"


class ResponseParseError(ApiError):
    """Raised when a response body cannot be decoded."""

    default_code = "PARSE_ERROR"


class DuplicateRequestIdError(ApiError):
    """Raised when a request reuses the ID of a request still in flight."""

    default_code = "DUPLICATE_REQUEST_ID"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request '{request_id}' is already in flight")


class EndpointNotFoundError(ApiError):
    """Raised when a named endpoint is missing from the configuration."""

    default_code = "ENDPOINT_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Endpoint '{name}' not found in configuration")


def normalize_error(error: BaseException) -> ApiError:
    """Convert any exception into an ``ApiError``.

    ``ApiError`` instances are returned unchanged; anything else keeps its
    message and, where present, its ``status``/``code`` attributes.
    """
    if isinstance(error, ApiError):
        return error

    status = getattr(error, "status", None)
    code = getattr(error, "code", None)
    return ApiError(
        str(error) or type(error).__name__,
        status=status if isinstance(status, int) else None,
        code=code if isinstance(code, str) else None,
    )
