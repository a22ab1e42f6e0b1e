"""Data client handlers for bus topics.

These handlers let other layers drive the data client through the event bus
instead of holding a reference to it. They converge on the client's public
API, so a bus-triggered change behaves exactly like a direct call.
"""

from typing import TYPE_CHECKING, Any

from loguru import logger

from runtime_core.event_bus.core import EventHandler

if TYPE_CHECKING:
    from runtime_core.data_client.client import DataClient


class AuthTokenUpdatedHandler(EventHandler):
    """Apply a token published on ``auth:token-updated`` to the data client.

    Payloads without a ``token`` are ignored; clearing the token is done with
    ``clear_auth_token`` directly.
    """

    def __init__(self, client: "DataClient"):
        self.client = client

    def handle(self, payload: Any, topic: str) -> None:
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            logger.debug(f"Ignoring {topic} without token")
            return
        self.client.set_auth_token(token)


class ClearCacheRequestedHandler(EventHandler):
    """Clear one cached URL (payload ``key``) or the whole cache on ``api:clear-cache``."""

    def __init__(self, client: "DataClient"):
        self.client = client

    def handle(self, payload: Any, topic: str) -> None:
        key = payload.get("key") if isinstance(payload, dict) else None
        self.client.clear_cache(key)
