"""Shared test fixtures."""

import pytest

from runtime_core.data_client.client import get_data_client
from runtime_core.event_bus.bus import get_event_bus
from runtime_core.services.registry import get_service_registry
from runtime_core.settings import get_settings


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test fresh process-wide instances."""
    caches = (get_settings, get_event_bus, get_data_client, get_service_registry)
    for cached in caches:
        cached.cache_clear()
    yield
    for cached in caches:
        cached.cache_clear()
