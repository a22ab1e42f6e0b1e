"""Runtime configuration using Pydantic Settings.

This module centralizes process-level configuration for the runtime core.
Values can be provided via environment variables (preferred) or fall back to
the defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

The data client's own configuration (base URL, cache and retry policy) lives
in a JSON file whose location is given by ``api_config_path``; see
``runtime_core.data_client.config``.

Environment variable prefix: ``RUNTIME_CORE_`` (e.g. ``RUNTIME_CORE_LOG_LEVEL``).
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, get_args

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]
LOG_LEVELS = get_args(LogLevel)


class Settings(BaseSettings):
    """Process-wide runtime settings.

    Attributes map directly to environment variables using the ``RUNTIME_CORE_``
    prefix (case-insensitive). For example, ``log_level`` <- ``RUNTIME_CORE_LOG_LEVEL``.
    """

    log_level: LogLevel = Field(
        default="INFO",
        description="Application log level",
    )
    api_config_path: Path | None = Field(
        default=None,
        description="Path of the JSON file holding the data client configuration",
    )  # fmt: skip
    event_history_size: int = Field(
        default=100,
        ge=0,
        description="Number of emissions kept in the event bus history",
    )  # fmt: skip
    event_debug: bool = Field(
        default=False,
        description="Log every subscription and emission at INFO level",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        """Accept level names in any case; unset means INFO."""
        level = "INFO" if value is None else str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level

    model_config = SettingsConfigDict(
        env_prefix="RUNTIME_CORE_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
