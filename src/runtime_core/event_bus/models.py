"""Data models for the event bus.

This module contains the Pydantic models the bus hands out for diagnostics
and dispatch results. None of them are consulted by dispatch itself.
"""

from typing import Any

import arrow
from pydantic import BaseModel, Field


class HistoryEntry(BaseModel):
    """One completed emission, kept for diagnostics."""

    topic: str
    payload: Any = None
    timestamp: str = Field(default_factory=lambda: arrow.utcnow().isoformat())  # ISO 8601 UTC timestamp
    handler_count: int = 0
    processing_time_ms: float = 0.0


class HandlerFailure(BaseModel):
    """A handler that raised during a dispatch pass."""

    subscription_id: str
    topic: str
    error_type: str
    message: str


class DispatchOutcome(BaseModel):
    """Result of a single publish call."""

    topic: str
    invoked: int = 0
    failures: list[HandlerFailure] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def succeeded(self) -> int:
        return self.invoked - len(self.failures)


class BusMetrics(BaseModel):
    """Snapshot of the bus counters."""

    events_published: int = 0
    handler_invocations: int = 0
    handler_errors: int = 0
    avg_processing_time_ms: float = 0.0
    total_subscribers: int = 0
    topic_count: int = 0
    wildcard_subscribers: int = 0
