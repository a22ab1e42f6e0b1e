"""Response cache for read requests.

Entries are keyed by the fully resolved request URL and expire ``ttl``
milliseconds after insertion. When the cache is full the oldest-inserted
entry is evicted (FIFO), regardless of how recently it was read.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .config import CacheConfig


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and its insertion time in milliseconds."""

    payload: Any
    inserted_at: float


class ResponseCache:
    """Capacity-bounded TTL cache with first-in-first-out eviction."""

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = monotonic_ms):
        """Create an empty cache.

        Args:
            config: Cache policy (enabled flag, ttl and max size)
            clock: Returns the current time in milliseconds
        """
        self._config = config
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, dropping it if it has expired."""
        if not self._config.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.inserted_at >= self._config.ttl:
            del self._entries[key]
            logger.trace(f"Cache entry expired: {key}")
            return None

        return entry

    def store(self, key: str, payload: Any) -> None:
        """Insert or replace the entry for ``key``, evicting the oldest entries if full."""
        if not self._config.enabled or self._config.max_size <= 0:
            return

        # A refreshed key moves to the back of the eviction order
        self._entries.pop(key, None)
        while len(self._entries) >= self._config.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.trace(f"Cache full, evicted: {oldest}")

        self._entries[key] = CacheEntry(payload=payload, inserted_at=self._clock())

    def invalidate(self, key: str | None = None) -> None:
        """Remove one entry, or every entry when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
