"""Tests for the data client's event bus wiring."""

import httpx
import pytest

from runtime_core.data_client import ApiConfig, DataClient
from runtime_core.event_bus import EventBus
from runtime_core.events import register_event_handlers, topics, unregister_event_handlers


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def client() -> DataClient:
    return DataClient(
        ApiConfig(base_url="https://api.test"),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True})),
    )


class TestRegisterEventHandlers:
    """Test cases for register_event_handlers."""

    def test_attaches_bus_and_subscribes(self, bus: EventBus, client: DataClient):
        subscription_ids = register_event_handlers(bus, client)

        assert client.event_bus is bus
        assert len(subscription_ids) == 2
        assert set(bus.list_topics()) == {topics.AUTH_TOKEN_UPDATED, topics.API_CLEAR_CACHE}

    def test_wiring_can_be_undone(self, bus: EventBus, client: DataClient):
        for sub_id in register_event_handlers(bus, client):
            assert bus.unsubscribe(sub_id)

        bus.publish(topics.AUTH_TOKEN_UPDATED, {"token": "abc"})
        assert client.auth_token is None

    def test_unregister_removes_only_that_client(self, bus: EventBus, client: DataClient):
        """Test that unwiring one client leaves another client on the same bus."""
        other = DataClient(ApiConfig(base_url="https://other.test"))
        register_event_handlers(bus, client)
        register_event_handlers(bus, other)

        assert unregister_event_handlers(bus, client) == 2
        bus.publish(topics.AUTH_TOKEN_UPDATED, {"token": "abc"})

        assert client.event_bus is None
        assert client.auth_token is None
        assert other.auth_token == "abc"
        assert unregister_event_handlers(bus, client) == 0


class TestAuthTokenUpdated:
    """Test cases for auth:token-updated."""

    def test_token_applied(self, bus: EventBus, client: DataClient):
        """Test that a published token reaches the client and is announced."""
        announced = []
        bus.subscribe(topics.API_AUTH_TOKEN_SET, lambda payload: announced.append(payload))
        register_event_handlers(bus, client)

        bus.publish(topics.AUTH_TOKEN_UPDATED, {"token": "abc"})

        assert client.auth_token == "abc"
        assert announced == [{"has_token": True}]

    @pytest.mark.parametrize("payload", [None, {}, {"token": ""}, "abc"])
    def test_payload_without_token_ignored(self, bus: EventBus, client: DataClient, payload):
        register_event_handlers(bus, client)
        client.set_auth_token("kept")

        assert bus.publish(topics.AUTH_TOKEN_UPDATED, payload) == 1
        assert client.auth_token == "kept"
        assert bus.metrics().handler_errors == 0


class TestClearCacheRequested:
    """Test cases for api:clear-cache."""

    @pytest.mark.asyncio
    async def test_clear_whole_cache(self, bus: EventBus, client: DataClient):
        register_event_handlers(bus, client)
        await client.get("/a")
        await client.get("/b")

        bus.publish(topics.API_CLEAR_CACHE)

        assert client.get_state().cache_size == 0
        await client.aclose()

    @pytest.mark.asyncio
    async def test_clear_single_key(self, bus: EventBus, client: DataClient):
        cleared = []
        bus.subscribe(topics.API_CACHE_CLEARED, lambda payload: cleared.append(payload))
        register_event_handlers(bus, client)
        await client.get("/a")
        await client.get("/b")

        bus.publish(topics.API_CLEAR_CACHE, {"key": "https://api.test/a"})

        assert client.get_state().cache_size == 1
        assert cleared == [{"key": "https://api.test/a"}]
        await client.aclose()
