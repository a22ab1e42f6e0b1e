"""Data models for data client diagnostics."""

from pydantic import BaseModel


class ClientMetrics(BaseModel):
    """Snapshot of the data client counters.

    Cache hits count as successful requests but not toward the average
    response time, which covers network round trips only.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cached_responses: int = 0
    retried_requests: int = 0
    avg_response_time_ms: float = 0.0
    success_rate: int = 0  # percent
    cache_hit_rate: int = 0  # percent


class ClientState(BaseModel):
    """Current data client state."""

    base_url: str
    has_auth_token: bool
    cache_size: int
    active_requests: int
    metrics: ClientMetrics
