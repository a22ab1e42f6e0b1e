"""Event Bus Implementation.

This module provides the main EventBus class that handles subscription and
emission. Topics are plain strings, conventionally ``<domain>:<action>``;
subscriptions may use ``*`` and ``?`` wildcards.

## Key Features

- **Synchronous Dispatch**: ``publish`` runs every handler before returning
- **Deferred Dispatch**: ``publish_deferred`` runs handlers concurrently
- **Priority Ordering**: Higher priority first, ties in registration order
- **One-shot Subscriptions**: Removed after their first successful dispatch
- **Error Isolation**: Handler failures don't affect other handlers
- **Diagnostics**: Bounded emission history and running metrics

## Advanced Usage

```python
from runtime_core.event_bus import get_event_bus

bus = get_event_bus()

def on_layer_event(payload, topic):
    print(f"{topic}: {payload}")

bus.subscribe("layer:*", on_layer_event)
bus.once("layer:ready", lambda payload: print("first layer ready"), priority=10)

bus.publish("layer:ready", {"layer": "ads"})

# Wait for async handlers to settle
outcome = await bus.publish_deferred_detailed("layer:error", {"layer": "cms"})
print(f"{outcome.invoked} handlers, {outcome.failed} failed")
```

"""

import asyncio
import copy
import inspect
import itertools
import time
from collections import deque
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any

from loguru import logger

from runtime_core.settings import get_settings
from runtime_core.utils.id_generator import generate_prefixed_id, is_prefixed_id

from .core import (
    SUBSCRIPTION_ID_PREFIX,
    EventEmissionError,
    HandlerRegistrationError,
    Subscription,
    compile_topic_pattern,
    is_topic_pattern,
    resolve_subscribers,
)
from .models import BusMetrics, DispatchOutcome, HandlerFailure, HistoryEntry

T_Handler = Callable[..., Any]


class EventBus:
    """In-process publish/subscribe bus shared by all runtime layers.

    The bus is single-threaded: ``publish`` never suspends, and deferred
    dispatch only interleaves at the handlers' own await points. Each
    dispatch works on a snapshot of the resolved subscribers, so handlers may
    subscribe, unsubscribe or publish re-entrantly.

    Example:
        ```python
        bus = EventBus()
        sub_id = bus.subscribe("auth:token-updated", on_token)
        bus.publish("auth:token-updated", {"token": "abc"})
        bus.unsubscribe(sub_id)
        ```
    """

    def __init__(self, history_size: int = 100, debug: bool = False) -> None:
        """Initialize a new EventBus instance.

        Args:
            history_size: Number of emissions kept by ``recent_history``.
            debug: If True, subscriptions and emissions are logged at INFO level.
        """
        self._exact: dict[str, list[Subscription]] = {}
        self._wildcards: list[Subscription] = []
        self._by_id: dict[str, Subscription] = {}
        self._sequence = itertools.count()
        self._history: deque[HistoryEntry] = deque(maxlen=history_size)
        self._pending: set[asyncio.Future[Any]] = set()

        self._events_published = 0
        self._handler_invocations = 0
        self._handler_errors = 0
        self._avg_processing_time_ms = 0.0

        self._debug = debug
        logger.debug(f"EventBus initialized (history_size={history_size}, debug={debug})")

    # Subscription management

    def subscribe(
        self,
        topic: str,
        handler: T_Handler,
        *,
        priority: int = 0,
        once: bool = False,
        context: Any = None,
    ) -> str | None:
        """Register a handler for a topic or wildcard pattern.

        Args:
            topic: Exact topic (``layer:ready``) or pattern (``layer:*``)
            handler: Callable receiving ``(payload, topic)`` or just ``(payload)``
            priority: Higher values run first within one emission
            once: Remove the subscription after its first successful dispatch
            context: Receiver a plain function handler is bound to

        Returns:
            The subscription ID, or None if the registration was rejected
        """
        try:
            self._validate_subscription(topic, handler)
        except HandlerRegistrationError as e:
            logger.error(f"EventBus rejected subscription: {e}")
            return None

        subscription = Subscription(
            id=generate_prefixed_id(SUBSCRIPTION_ID_PREFIX),
            topic=topic,
            handler=handler,
            priority=int(priority),
            once=once,
            context=context,
            sequence=next(self._sequence),
            matcher=compile_topic_pattern(topic) if is_topic_pattern(topic) else None,
        )

        if subscription.is_wildcard:
            self._wildcards.append(subscription)
        else:
            self._exact.setdefault(topic, []).append(subscription)
        self._by_id[subscription.id] = subscription

        self._log(f"Subscribed to '{topic}' (ID: {subscription.id}, priority={subscription.priority}, once={once})")
        return subscription.id

    def once(self, topic: str, handler: T_Handler, *, priority: int = 0, context: Any = None) -> str | None:
        """Register a handler that fires on a single emission."""
        return self.subscribe(topic, handler, priority=priority, once=True, context=context)

    def unsubscribe(self, topic_or_id: str, handler: T_Handler | None = None) -> bool:
        """Remove subscriptions by ID, by topic, or by topic and handler.

        Args:
            topic_or_id: A subscription ID, an exact topic or a wildcard pattern
            handler: When given with a topic, only subscriptions of this handler are removed

        Returns:
            True if at least one subscription was removed
        """
        if not isinstance(topic_or_id, str):
            return False

        if is_prefixed_id(topic_or_id, SUBSCRIPTION_ID_PREFIX):
            subscription = self._by_id.get(topic_or_id)
            if subscription is None:
                logger.trace(f"No subscription with ID {topic_or_id}")
                return False
            self._remove(subscription)
            self._log(f"Unsubscribed {topic_or_id} from '{subscription.topic}'")
            return True

        if is_topic_pattern(topic_or_id):
            candidates = [sub for sub in self._wildcards if sub.topic == topic_or_id]
        else:
            candidates = list(self._exact.get(topic_or_id, ()))

        if handler is not None:
            candidates = [sub for sub in candidates if sub.handler == handler]

        for subscription in candidates:
            self._remove(subscription)

        if candidates:
            self._log(f"Unsubscribed {len(candidates)} handler(s) from '{topic_or_id}'")
        return bool(candidates)

    def clear_all(self, topic: str | None = None) -> None:
        """Clear subscriptions for one topic, or all subscriptions.

        For a topic, exact subscriptions are dropped together with every
        wildcard subscription that matches it or is registered under it.
        """
        if topic is None:
            self._exact.clear()
            self._wildcards.clear()
            self._by_id.clear()
            self._log("Cleared all subscriptions")
            return

        for subscription in self._exact.pop(topic, []):
            self._by_id.pop(subscription.id, None)

        kept = []
        for subscription in self._wildcards:
            if subscription.topic == topic or subscription.matches(topic):
                self._by_id.pop(subscription.id, None)
            else:
                kept.append(subscription)
        self._wildcards = kept
        self._log(f"Cleared subscriptions for '{topic}'")

    # Dispatch

    def publish(self, topic: str, payload: Any = None) -> int:
        """Dispatch synchronously and return the number of handlers invoked."""
        return self.publish_detailed(topic, payload).invoked

    def publish_detailed(self, topic: str, payload: Any = None) -> DispatchOutcome:
        """Dispatch synchronously, reporting every handler failure.

        Handlers run in priority order on the caller's stack. A handler that
        raises is counted and logged; the remaining handlers still run.
        Awaitables returned by handlers are scheduled on the running loop.

        Args:
            topic: Concrete topic to publish
            payload: Value passed to every handler

        Returns:
            The dispatch outcome; never raises
        """
        started = time.perf_counter()
        outcome = DispatchOutcome(topic=str(topic))
        spent: list[Subscription] = []

        try:
            for subscription in self._resolve(topic):
                if subscription.once:
                    if subscription.consumed:
                        continue
                    subscription.consumed = True

                outcome.invoked += 1
                self._handler_invocations += 1
                try:
                    result = subscription.invoke(payload, topic)
                except Exception as e:
                    subscription.consumed = False
                    self._record_failure(outcome, subscription, topic, e)
                    continue

                if inspect.isawaitable(result):
                    self._schedule(result, subscription, topic)
                if subscription.once:
                    spent.append(subscription)
        except Exception as e:
            logger.error(f"Critical error emitting '{topic}': {e}")
            self._handler_errors += 1
            outcome = DispatchOutcome(topic=str(topic))

        for subscription in spent:
            self._remove(subscription)

        self._record_emission(topic, payload, outcome.invoked, started)
        return outcome

    async def publish_deferred(self, topic: str, payload: Any = None) -> int:
        """Dispatch concurrently and return the number of handlers invoked."""
        outcome = await self.publish_deferred_detailed(topic, payload)
        return outcome.invoked

    async def publish_deferred_detailed(self, topic: str, payload: Any = None) -> DispatchOutcome:
        """Dispatch to all handlers concurrently and wait for them to settle.

        Handlers are started in priority order and awaited together. A failing
        handler is isolated exactly as in ``publish_detailed``.

        Args:
            topic: Concrete topic to publish
            payload: Value passed to every handler

        Returns:
            The dispatch outcome once every handler has settled; never raises
        """
        started = time.perf_counter()
        outcome = DispatchOutcome(topic=str(topic))

        try:
            runnable = []
            for subscription in self._resolve(topic):
                if subscription.once:
                    if subscription.consumed:
                        continue
                    subscription.consumed = True
                runnable.append(subscription)

            outcome.invoked = len(runnable)
            self._handler_invocations += len(runnable)
            logger.trace(f"Executing {len(runnable)} handlers concurrently for '{topic}'")

            results = await asyncio.gather(
                *(self._run_handler(subscription, payload, topic) for subscription in runnable),
                return_exceptions=True,
            )

            for subscription, result in zip(runnable, results, strict=True):
                if isinstance(result, BaseException):
                    subscription.consumed = False
                    self._record_failure(outcome, subscription, topic, result)
                elif subscription.once:
                    self._remove(subscription)
        except Exception as e:
            logger.error(f"Critical async error emitting '{topic}': {e}")
            self._handler_errors += 1
            outcome = DispatchOutcome(topic=str(topic))

        self._record_emission(topic, payload, outcome.invoked, started)
        return outcome

    # Diagnostics

    def list_topics(self) -> list[str]:
        """Exact topics that currently have subscriptions."""
        return list(self._exact.keys())

    def list_patterns(self) -> list[str]:
        """Wildcard patterns that currently have subscriptions."""
        return list(dict.fromkeys(sub.topic for sub in self._wildcards))

    def list_subscriptions(self, topic: str) -> list[Subscription]:
        """Subscriptions registered under a topic or pattern, in registration order."""
        if is_topic_pattern(topic):
            return [sub for sub in self._wildcards if sub.topic == topic]
        return list(self._exact.get(topic, ()))

    def recent_history(self, limit: int = 10) -> list[HistoryEntry]:
        """Return the most recent emissions, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def metrics(self) -> BusMetrics:
        """Return a snapshot of the bus counters."""
        exact_count = sum(len(subs) for subs in self._exact.values())
        return BusMetrics(
            events_published=self._events_published,
            handler_invocations=self._handler_invocations,
            handler_errors=self._handler_errors,
            avg_processing_time_ms=self._avg_processing_time_ms,
            total_subscribers=exact_count + len(self._wildcards),
            topic_count=len(self._exact),
            wildcard_subscribers=len(self._wildcards),
        )

    def set_debug_logging(self, enabled: bool) -> None:
        """Enable or disable INFO-level logging of bus activity."""
        self._debug = enabled
        logger.info(f"EventBus debug logging {'enabled' if enabled else 'disabled'}")

    def shutdown(self) -> None:
        """Drop all subscriptions and history and cancel scheduled handler coroutines."""
        for future in list(self._pending):
            future.cancel()
        self._pending.clear()
        self.clear_all()
        self._history.clear()
        logger.debug("EventBus shutdown complete")

    # Internals

    def _validate_subscription(self, topic: Any, handler: Any) -> None:
        if not isinstance(topic, str) or not topic:
            raise HandlerRegistrationError(f"Invalid topic: {topic!r}")
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable for '{topic}': {handler!r}")

    def _resolve(self, topic: Any) -> list[Subscription]:
        if not isinstance(topic, str) or not topic:
            raise EventEmissionError(f"Invalid topic: {topic!r}")
        return resolve_subscribers(topic, self._exact, self._wildcards)

    def _remove(self, subscription: Subscription) -> bool:
        if self._by_id.pop(subscription.id, None) is None:
            return False

        if subscription.is_wildcard:
            self._wildcards.remove(subscription)
            return True

        subscriptions = self._exact.get(subscription.topic)
        if subscriptions is not None:
            subscriptions.remove(subscription)
            if not subscriptions:
                del self._exact[subscription.topic]
        return True

    async def _run_handler(self, subscription: Subscription, payload: Any, topic: str) -> Any:
        logger.trace(f"Executing handler {subscription.id} for '{topic}'")
        result = subscription.invoke(payload, topic)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _schedule(self, awaitable: Awaitable[Any], subscription: Subscription, topic: str) -> None:
        """Run an awaitable returned during synchronous dispatch on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Handler {subscription.id} for '{topic}' returned an awaitable outside an event loop; discarded")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        future = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(future)

        def _settled(done: asyncio.Future[Any]) -> None:
            self._pending.discard(done)
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                self._handler_errors += 1
                logger.error(f"Async handler {subscription.id} for '{topic}' failed: {error}")

        future.add_done_callback(_settled)

    def _record_failure(
        self, outcome: DispatchOutcome, subscription: Subscription, topic: str, error: BaseException
    ) -> None:
        self._handler_errors += 1
        outcome.failures.append(
            HandlerFailure(
                subscription_id=subscription.id,
                topic=topic,
                error_type=type(error).__name__,
                message=str(error),
            )
        )
        logger.error(f"Error in handler {subscription.id} for '{topic}': {error}")

    def _record_emission(self, topic: Any, payload: Any, handler_count: int, started: float) -> None:
        processing_time_ms = (time.perf_counter() - started) * 1000

        self._events_published += 1
        n = self._events_published
        self._avg_processing_time_ms = (self._avg_processing_time_ms * (n - 1) + processing_time_ms) / n

        self._history.append(
            HistoryEntry(
                topic=str(topic),
                payload=_snapshot(payload),
                handler_count=handler_count,
                processing_time_ms=processing_time_ms,
            )
        )
        self._log(f"Emitted '{topic}' ({handler_count} handlers, {processing_time_ms:.2f}ms)")

    def _log(self, message: str) -> None:
        logger.log("INFO" if self._debug else "TRACE", message)


def _snapshot(payload: Any) -> Any:
    """Deep copy a payload for the history, keeping the original if it can't be copied."""
    try:
        return copy.deepcopy(payload)
    except Exception as e:
        logger.trace(f"History keeps payload by reference: {e}")
        return payload


@lru_cache
def get_event_bus() -> EventBus:
    """Get or create the process-wide EventBus instance.

    Returns:
        The EventBus instance

    Example:
        ```python
        bus = get_event_bus()
        bus.subscribe("layer:*", on_layer_event)
        bus.publish("layer:ready", {"layer": "ads"})
        ```
    """
    settings = get_settings()
    return EventBus(history_size=settings.event_history_size, debug=settings.event_debug)
