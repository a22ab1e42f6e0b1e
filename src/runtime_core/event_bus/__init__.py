"""Event Bus System for Decoupled Layer Communication.

This module provides the process-wide publish/subscribe bus through which the
runtime's feature layers talk to each other without holding references to one
another. It supports:

- **String Topics**: ``<domain>:<action>`` names such as ``auth:token-updated``
- **Wildcards**: ``*`` and ``?`` patterns, compiled once at subscription time
- **Priorities and One-shots**: Ordered, optionally self-removing handlers
- **Sync and Deferred Dispatch**: ``publish`` and ``await publish_deferred``
- **Error Isolation**: Handler failures don't affect other handlers
- **Singleton Access**: Global bus instance via ``get_event_bus`` (@lru_cache)

## Quick Start

```python
from runtime_core.event_bus import get_event_bus

def on_api_error(payload, topic):
    print(f"{topic}: {payload['error']}")

bus = get_event_bus()
bus.subscribe("api:request-error", on_api_error)
bus.publish("api:request-error", {"error": "HTTP 503"})
```

For the subscription record and subscriber resolution, see `core.py`.
For the dispatch API and diagnostics, see `bus.py`.

"""

from .bus import EventBus, get_event_bus
from .core import EventHandler, Subscription
from .models import BusMetrics, DispatchOutcome, HandlerFailure, HistoryEntry

__all__ = [
    "BusMetrics",
    "DispatchOutcome",
    "EventBus",
    "EventHandler",
    "HandlerFailure",
    "HistoryEntry",
    "Subscription",
    "get_event_bus",
]
