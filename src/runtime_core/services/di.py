"""Dependency injection setup module.

This module provides centralized service registration so that feature layers
and the CLI receive the event bus and data client by reference instead of
reaching for module globals.
"""

from loguru import logger

from runtime_core.data_client.client import DataClient, get_data_client
from runtime_core.event_bus.bus import EventBus, get_event_bus
from runtime_core.services.registry import ServiceRegistry


def register_core_services(registry: ServiceRegistry) -> None:
    """Register the runtime core services in the service registry.

    Services are registered as factories because their get_*() functions
    already provide singleton behavior via @lru_cache. This allows lazy
    initialization: the data client configuration is only read on first use.
    Types that already have a provider (e.g. a test double) are left alone.

    Args:
        registry: Service registry instance to register services in
    """
    logger.debug("Registering core services in DI container")

    for service_type, factory in ((EventBus, get_event_bus), (DataClient, get_data_client)):
        if registry.is_registered(service_type):
            logger.trace(f"{service_type.__name__} already registered, keeping existing provider")
            continue
        registry.register_factory(service_type, factory)
