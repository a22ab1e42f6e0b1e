"""Tests for the service registry."""

import pytest

from runtime_core.services.registry import ServiceNotRegisteredError, ServiceRegistry, get_service_registry


class FeedService:
    """A stand-in service for testing."""

    def __init__(self, source: str = "default"):
        self.source = source


class CounterService:
    """Another stand-in service for testing."""

    def __init__(self, start: int = 0):
        self.start = start


def test_register_and_get_singleton():
    """Test registering and retrieving a singleton service."""
    registry = ServiceRegistry()
    service = FeedService("singleton")
    registry.register_singleton(FeedService, service)

    assert registry.get(FeedService) is service


def test_register_and_get_factory():
    """Test that a factory is called on every lookup."""
    registry = ServiceRegistry()
    calls = []

    def factory() -> FeedService:
        calls.append(1)
        return FeedService("factory")

    registry.register_factory(FeedService, factory)
    first = registry.get(FeedService)
    second = registry.get(FeedService)

    assert len(calls) == 2
    assert first.source == "factory"
    assert first is not second


def test_callable_singleton_is_not_called():
    """Test that instances are returned as is even when they are callable."""

    class CallableService:
        def __call__(self):
            raise AssertionError("must not be called")

    registry = ServiceRegistry()
    service = CallableService()
    registry.register_singleton(CallableService, service)

    assert registry.get(CallableService) is service


def test_get_unregistered_service():
    """Test getting an unregistered service raises a KeyError subclass."""
    registry = ServiceRegistry()
    with pytest.raises(KeyError, match="Service FeedService not registered"):
        registry.get(FeedService)
    with pytest.raises(ServiceNotRegisteredError) as exc_info:
        registry.get(CounterService)
    assert exc_info.value.service_name == "CounterService"


def test_replace_and_unregister():
    """Test that registering again replaces the provider."""
    registry = ServiceRegistry()
    registry.register_factory(FeedService, lambda: FeedService("factory"))
    instance = FeedService("instance")
    registry.register_singleton(FeedService, instance)

    assert registry.get(FeedService) is instance
    assert registry.is_registered(FeedService)
    assert registry.unregister(FeedService) is True
    assert not registry.is_registered(FeedService)
    assert registry.unregister(FeedService) is False


def test_override_restores_previous_provider():
    """Test temporarily replacing a service."""
    registry = ServiceRegistry()
    registry.register_factory(FeedService, lambda: FeedService("factory"))
    double = FeedService("double")

    with registry.override(FeedService, double) as served:
        assert served is double
        assert registry.get(FeedService) is double

    assert registry.get(FeedService).source == "factory"


def test_override_unregistered_type():
    registry = ServiceRegistry()
    with registry.override(CounterService, CounterService(5)):
        assert registry.get(CounterService).start == 5
    assert not registry.is_registered(CounterService)


def test_service_registry_singleton():
    """Test that get_service_registry returns the same instance each time."""
    registry1 = get_service_registry()
    registry2 = get_service_registry()
    assert registry1 is registry2

    service = FeedService("global")
    registry1.register_singleton(FeedService, service)
    assert registry2.get(FeedService) is service
