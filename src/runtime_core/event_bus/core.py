"""Core Event Bus Components.

This module contains the fundamental abstractions for the event bus system.
They carry no state of their own and are shared by the synchronous and the
deferred dispatch paths in ``bus.py``.

## Key Components

- **Subscription**: One handler registration (exact topic or wildcard pattern)
- **compile_topic_pattern**: Turns a ``*``/``?`` glob into an anchored regex
- **resolve_subscribers**: Pure subscriber resolution and priority ordering
- **EventHandler**: Base class for class-based handlers
- **EventBusError**: Base exception for all event bus related errors

## Usage Example with a class-based handler

```python
from runtime_core.event_bus import EventHandler, get_event_bus

class LayerReadyHandler(EventHandler):
    def __init__(self, registry: LayerRegistry):
        self.registry = registry

    def handle(self, payload, topic):
        self.registry.mark_ready(payload["layer"])

get_event_bus().subscribe("layer:ready", LayerReadyHandler(registry), priority=10)
```

"""

import inspect
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from itertools import chain
from types import MethodType
from typing import Any

SUBSCRIPTION_ID_PREFIX = "sub"

_WILDCARD_CHARS = ("*", "?")


class EventHandler(ABC):
    """Base class for class-based event handlers.

    Handlers should inherit from this class and implement the handle method.
    Instances are callable, so they can be passed to ``EventBus.subscribe``
    directly. Collaborators are given to the constructor.
    """

    @abstractmethod
    def handle(self, payload: Any, topic: str) -> Any:
        """Handle one emission.

        Args:
            payload: The value passed to ``publish``
            topic: The concrete topic the payload was published under

        Returns:
            Optional result. Awaitables are awaited by deferred dispatch.

        Raises:
            Any exception that occurs during handling. Exceptions are caught
            by the event bus and reported in the dispatch outcome.
        """

    def __call__(self, payload: Any, topic: str) -> Any:
        return self.handle(payload, topic)


def is_topic_pattern(topic: str) -> bool:
    """Return True if the topic is a wildcard pattern."""
    return any(char in topic for char in _WILDCARD_CHARS)


def compile_topic_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a topic glob into an anchored regular expression.

    ``*`` matches any run of characters (including none), ``?`` exactly one
    character; everything else is matched literally.

    Args:
        pattern: Glob such as ``layer:*`` or ``api:request-?????``

    Returns:
        The compiled expression, anchored at both ends
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile(r"\A" + "".join(parts) + r"\Z", re.DOTALL)


def _positional_arity(callback: Callable[..., Any]) -> int:
    """Number of leading arguments (payload, topic) the callback accepts."""
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return 2

    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return 2
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return min(count, 2)


def bind_handler(handler: Callable[..., Any], context: Any) -> Callable[..., Any]:
    """Bind a plain function to ``context`` so it runs as a method of it.

    Bound methods, handler instances and other callables already carry their
    receiver and are returned unchanged.
    """
    if context is not None and inspect.isfunction(handler):
        return MethodType(handler, context)
    return handler


@dataclass(eq=False)
class Subscription:
    """A single handler registration.

    Equality and hashing are by identity. Everything except ``consumed`` is
    fixed at creation; ``consumed`` is set while a one-shot subscription is
    being fired so that re-entrant dispatches skip it.
    """

    id: str
    topic: str
    handler: Callable[..., Any]
    priority: int = 0
    once: bool = False
    context: Any = None
    sequence: int = 0
    matcher: re.Pattern[str] | None = None
    consumed: bool = field(default=False, repr=False)
    _callback: Callable[..., Any] = field(init=False, repr=False)
    _arity: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._callback = bind_handler(self.handler, self.context)
        self._arity = _positional_arity(self._callback)

    @property
    def is_wildcard(self) -> bool:
        return self.matcher is not None

    def matches(self, topic: str) -> bool:
        """Return True if this wildcard subscription matches ``topic``."""
        return self.matcher is not None and self.matcher.match(topic) is not None

    def invoke(self, payload: Any, topic: str) -> Any:
        """Call the handler with as many of (payload, topic) as it accepts."""
        return self._callback(*(payload, topic)[: self._arity])


def resolve_subscribers(
    topic: str,
    exact: Mapping[str, Iterable[Subscription]],
    wildcards: Iterable[Subscription],
) -> list[Subscription]:
    """Resolve the ordered subscriber snapshot for one emission.

    The result is the union of the exact-topic subscriptions and every
    wildcard subscription matching ``topic``, without duplicates and without
    one-shot subscriptions already consumed. It is sorted by descending
    priority; equal priorities keep registration order.

    Args:
        topic: Concrete topic being published
        exact: Exact-topic registrations
        wildcards: Wildcard registrations

    Returns:
        A new list, safe to iterate while the registry changes
    """
    seen: set[int] = set()
    resolved: list[Subscription] = []
    candidates = chain(exact.get(topic, ()), (sub for sub in wildcards if sub.matches(topic)))
    for sub in candidates:
        if sub.consumed or id(sub) in seen:
            continue
        seen.add(id(sub))
        resolved.append(sub)
    resolved.sort(key=lambda sub: (-sub.priority, sub.sequence))
    return resolved


class EventBusError(Exception):
    """Base exception for all event bus related errors.

    Use this for catching any event bus related error:
        ```python
        try:
            # event bus operations
            pass
        except EventBusError as e:
            logger.error(f"Event bus error: {e}")
        ```
    """


class HandlerRegistrationError(EventBusError):
    """Raised when handler registration fails.

    This occurs when:
    - The topic is empty or not a string
    - The handler is not callable
    """


class EventEmissionError(EventBusError):
    """Raised when an emission cannot be dispatched.

    This occurs when:
    - The topic is empty or not a string
    """
