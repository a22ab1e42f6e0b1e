"""Data client configuration.

The configuration is a JSON document loaded once at startup:

```json
{
  "baseURL": "https://api.example.com",
  "timeout": 30000,
  "headers": {"Accept": "application/json"},
  "endpoints": {"trending": "/v1/trending"},
  "cache": {"enabled": true, "ttl": 300000, "maxSize": 100},
  "retry": {"maxRetries": 3, "retryDelay": 1000, "backoffMultiplier": 2, "retryOn": [429, 503]}
}
```

Durations are milliseconds. Missing keys take the defaults below; a missing
or malformed file falls back to the defaults entirely.
"""

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}
DEFAULT_RETRY_STATUSES = [408, 429, 500, 502, 503, 504]


class CacheConfig(BaseModel):
    """Response cache policy."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    enabled: bool = True
    ttl: int = Field(default=300_000, ge=0, description="Entry lifetime in milliseconds")
    max_size: int = Field(default=100, ge=0, alias="maxSize")


class RetryConfig(BaseModel):
    """Retry and backoff policy."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    max_retries: int = Field(default=3, ge=0, alias="maxRetries")
    retry_delay: int = Field(default=1000, ge=0, alias="retryDelay", description="Delay before the first retry in milliseconds")
    backoff_multiplier: float = Field(default=2.0, gt=0, alias="backoffMultiplier")
    retry_on: frozenset[int] = Field(default=frozenset(DEFAULT_RETRY_STATUSES), alias="retryOn")

    def delay_before(self, retry_number: int) -> float:
        """Delay in milliseconds before the given (1-indexed) retry."""
        return self.retry_delay * self.backoff_multiplier ** (retry_number - 1)


class ApiConfig(BaseModel):
    """Complete data client configuration, immutable once loaded."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    base_url: str = Field(default="", alias="baseURL")
    timeout: int = Field(default=30_000, gt=0, description="Per-attempt timeout in milliseconds")
    headers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))
    endpoints: dict[str, str] = Field(default_factory=dict)
    graphql_endpoint: str = Field(default="/graphql", alias="graphqlEndpoint")
    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)


def load_api_config(path: Path | str | None) -> ApiConfig:
    """Load the data client configuration from a JSON file.

    Args:
        path: Location of the JSON file, or None to use the defaults

    Returns:
        The parsed configuration, or the defaults if the file is missing or invalid
    """
    if path is None:
        logger.debug("No API configuration file given, using defaults")
        return ApiConfig()

    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Using default API configuration, cannot read {config_path}: {e}")
        return ApiConfig()

    try:
        config = ApiConfig.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Using default API configuration, {config_path} is invalid: {e.error_count()} error(s)")
        logger.debug(f"API configuration errors: {e}")
        return ApiConfig()

    logger.info(f"API configuration loaded from {config_path}")
    return config
