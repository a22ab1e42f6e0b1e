"""Event wiring for the runtime core.

This module connects the data client to the event bus: the client publishes
its lifecycle events on the bus, and listens for the topics other layers use
to drive it.
"""

from typing import TYPE_CHECKING

from loguru import logger

from runtime_core.event_bus import EventBus
from runtime_core.events import topics
from runtime_core.events.api_handlers import AuthTokenUpdatedHandler, ClearCacheRequestedHandler

if TYPE_CHECKING:
    from runtime_core.data_client.client import DataClient

__all__ = [
    "AuthTokenUpdatedHandler",
    "ClearCacheRequestedHandler",
    "register_event_handlers",
    "topics",
    "unregister_event_handlers",
]


def register_event_handlers(event_bus: EventBus, client: "DataClient") -> list[str]:
    """Wire the data client to the event bus.

    The client starts publishing its lifecycle events on ``event_bus`` and
    reacts to ``auth:token-updated`` and ``api:clear-cache``.

    Args:
        event_bus: Bus to attach
        client: Data client to wire

    Returns:
        The subscription IDs, so the wiring can be undone with ``unsubscribe``
    """
    logger.debug("Registering data client event handlers")

    client.attach_event_bus(event_bus)
    subscription_ids = [
        event_bus.subscribe(topics.AUTH_TOKEN_UPDATED, AuthTokenUpdatedHandler(client)),
        event_bus.subscribe(topics.API_CLEAR_CACHE, ClearCacheRequestedHandler(client)),
    ]

    logger.info("Data client event handlers registered successfully")
    return [sub_id for sub_id in subscription_ids if sub_id is not None]


def unregister_event_handlers(event_bus: EventBus, client: "DataClient") -> int:
    """Undo ``register_event_handlers`` for one client.

    Returns:
        The number of subscriptions removed
    """
    removed = 0
    for topic in (topics.AUTH_TOKEN_UPDATED, topics.API_CLEAR_CACHE):
        for subscription in event_bus.list_subscriptions(topic):
            handler = subscription.handler
            if isinstance(handler, AuthTokenUpdatedHandler | ClearCacheRequestedHandler) and handler.client is client:
                removed += event_bus.unsubscribe(subscription.id)

    if client.event_bus is event_bus:
        client.attach_event_bus(None)
    logger.debug(f"Data client event handlers removed ({removed})")
    return removed
