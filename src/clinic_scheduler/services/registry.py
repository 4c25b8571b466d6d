"""Service registry for dependency injection.

Event bus handler classes declare their collaborators as constructor
parameters; the bus resolves them here by type.
"""

from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar, cast

T = TypeVar("T")
ServiceFactory = Callable[[], T]
ServiceProvider = T | ServiceFactory[T]


class ServiceRegistry:
    """Registry for all shared services with support for singletons and factories."""

    def __init__(self):
        self._services: dict[str, ServiceProvider[Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Register a singleton instance by its type."""
        self._services[service_type.__name__] = instance

    def register_factory(self, service_type: type[T], factory: ServiceFactory[T]) -> None:
        """Register a factory function by its type; it is called on every lookup."""
        self._services[service_type.__name__] = factory

    def is_registered(self, service_type: type) -> bool:
        return service_type.__name__ in self._services

    def get(self, service_type: type[T]) -> T:
        """Get a service instance by type.

        Raises:
            KeyError: If the requested service is not registered
        """
        service_name = service_type.__name__

        if service_name not in self._services:
            raise KeyError(f"Service {service_name} not registered")

        provider = self._services[service_name]

        if callable(provider) and not isinstance(provider, type):
            return provider()

        return cast(T, provider)

    def clear(self) -> None:
        """Forget every registration."""
        self._services.clear()


@lru_cache
def get_service_registry() -> ServiceRegistry:
    """Get the singleton service registry instance."""
    return ServiceRegistry()
