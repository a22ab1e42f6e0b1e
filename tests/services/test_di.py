"""Tests for core service registration."""

import json
from pathlib import Path

import pytest

from runtime_core.data_client import DataClient, close_data_client, get_data_client
from runtime_core.event_bus import EventBus, get_event_bus
from runtime_core.events import topics
from runtime_core.services import ServiceRegistry, register_core_services


def test_register_core_services():
    """Test that the bus and the client resolve to the process singletons."""
    registry = ServiceRegistry()
    register_core_services(registry)

    assert registry.get(EventBus) is get_event_bus()
    assert registry.get(DataClient) is get_data_client()


def test_existing_providers_are_kept():
    """Test that a pre-registered double survives core registration."""
    registry = ServiceRegistry()
    bus = EventBus()
    registry.register_singleton(EventBus, bus)

    register_core_services(registry)

    assert registry.get(EventBus) is bus
    assert registry.is_registered(DataClient)


def test_data_client_wired_to_process_bus():
    """Test that the process data client listens on the process bus."""
    client = get_data_client()
    bus = get_event_bus()

    assert client.event_bus is bus
    bus.publish(topics.AUTH_TOKEN_UPDATED, {"token": "from-bus"})
    assert client.auth_token == "from-bus"


def test_data_client_reads_configured_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Test that the process data client is built from the configured file."""
    path = tmp_path / "api-config.json"
    path.write_text(json.dumps({"baseURL": "https://api.test", "endpoints": {"trending": "/v1/trending"}}))
    monkeypatch.setenv("RUNTIME_CORE_API_CONFIG_PATH", str(path))

    client = get_data_client()

    assert client.config.base_url == "https://api.test"
    assert client.config.endpoints == {"trending": "/v1/trending"}


@pytest.mark.asyncio
async def test_close_data_client_replaces_process_client():
    """Test that a closed process client is unwired and rebuilt on next use."""
    bus = get_event_bus()
    old = get_data_client()

    await close_data_client()
    new = get_data_client()
    bus.publish(topics.AUTH_TOKEN_UPDATED, {"token": "after-close"})

    assert new is not old
    assert old.event_bus is None
    assert old.auth_token is None
    assert new.auth_token == "after-close"
    assert len(bus.list_subscriptions(topics.AUTH_TOKEN_UPDATED)) == 1
    await close_data_client()


@pytest.mark.asyncio
async def test_close_data_client_without_client():
    await close_data_client()
    assert get_data_client.cache_info().currsize == 0
