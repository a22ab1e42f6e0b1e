"""Service registry for dependency injection.

Feature layers receive the event bus and the data client from here instead
of constructing their own, so every layer in the process shares one bus and
one client.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, TypeVar, cast

from loguru import logger

T = TypeVar("T")
ServiceFactory = Callable[[], T]


class ServiceNotRegisteredError(KeyError):
    """Raised when a service type has no registered provider."""

    def __init__(self, service_name: str):
        super().__init__(f"Service {service_name} not registered")
        self.service_name = service_name

    def __str__(self) -> str:
        return self.args[0]


class ServiceRegistry:
    """Registry of shared services, keyed by type name.

    A provider is either an instance (returned as is) or a zero-argument
    factory (called on every lookup). Factories that should yield one shared
    instance are cached at their definition, like ``get_event_bus``.
    """

    def __init__(self):
        """Initialize an empty service registry."""
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, ServiceFactory[Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Register a ready-made instance, replacing any previous provider.

        Args:
            service_type: The type the instance is looked up by
            instance: The shared instance
        """
        name = service_type.__name__
        self._factories.pop(name, None)
        self._instances[name] = instance
        logger.trace(f"Registered singleton {name}")

    def register_factory(self, service_type: type[T], factory: ServiceFactory[T]) -> None:
        """Register a factory, replacing any previous provider.

        Args:
            service_type: The type the factory's products are looked up by
            factory: Zero-argument callable producing the service
        """
        name = service_type.__name__
        self._instances.pop(name, None)
        self._factories[name] = factory
        logger.trace(f"Registered factory {name}")

    def unregister(self, service_type: type) -> bool:
        """Remove the provider for a type. Returns True if one existed."""
        name = service_type.__name__
        found = self._instances.pop(name, None) is not None
        return self._factories.pop(name, None) is not None or found

    def is_registered(self, service_type: type) -> bool:
        """Return True if a provider exists for the type."""
        name = service_type.__name__
        return name in self._instances or name in self._factories

    def get(self, service_type: type[T]) -> T:
        """Get a service instance by type.

        Args:
            service_type: The type of the service to retrieve

        Returns:
            The registered instance, or a fresh product of the registered factory

        Raises:
            ServiceNotRegisteredError: If the requested service is not registered
        """
        name = service_type.__name__
        if name in self._instances:
            return cast(T, self._instances[name])
        if name in self._factories:
            return cast(T, self._factories[name]())
        raise ServiceNotRegisteredError(name)

    @contextmanager
    def override(self, service_type: type[T], instance: T) -> Iterator[T]:
        """Temporarily serve ``instance`` for a type, restoring the previous provider afterwards.

        Example:
            ```python
            with get_service_registry().override(DataClient, DataClient(transport=mock)):
                runner.invoke(app, ["api", "get", "/ping"])
            ```
        """
        name = service_type.__name__
        saved_instance = self._instances.get(name)
        saved_factory = self._factories.get(name)
        self.register_singleton(service_type, instance)
        try:
            yield instance
        finally:
            self.unregister(service_type)
            if saved_instance is not None:
                self._instances[name] = saved_instance
            if saved_factory is not None:
                self._factories[name] = saved_factory


@lru_cache
def get_service_registry() -> ServiceRegistry:
    """Get the singleton service registry instance.

    Returns:
        The global service registry instance
    """
    return ServiceRegistry()
