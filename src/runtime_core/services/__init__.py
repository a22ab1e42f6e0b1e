"""Service registry and dependency injection wiring."""

from runtime_core.services.di import register_core_services
from runtime_core.services.registry import ServiceNotRegisteredError, ServiceRegistry, get_service_registry

__all__ = ["ServiceNotRegisteredError", "ServiceRegistry", "get_service_registry", "register_core_services"]
