"""
Dependency injection container for application services.

The container owns the long-lived service instances (registry, event hub,
establisher, session manager) so entry points receive them explicitly instead
of reaching for module-level state.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when a service factory fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when a factory resolves its own service type."""
    pass


class ServiceRegistration:
    """Registration information for a singleton service."""

    def __init__(self,
                 service_type: Type[Any],
                 factory: Optional[Callable[['IContainer'], Any]] = None,
                 instance: Any = None):
        self.service_type = service_type
        self.factory = factory
        self.instance = instance


class IContainer(ABC):
    """Interface for dependency injection containers."""

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """Register a ready-made instance."""
        pass

    @abstractmethod
    def register_factory(self, service_type: Type[T], factory: Callable[['IContainer'], T]) -> None:
        """Register a factory; it is called once, on first resolution."""
        pass

    @abstractmethod
    def resolve(self, service_type: Type[T]) -> T:
        """
        Resolve a service instance.

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If the factory fails
        """
        pass

    @abstractmethod
    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """Resolve a service, returning None instead of raising."""
        pass

    @abstractmethod
    def is_registered(self, service_type: Type[Any]) -> bool:
        pass


class Container(IContainer):
    """Lightweight singleton container with lazy factories."""

    def __init__(self) -> None:
        self._services: Dict[Type[Any], ServiceRegistration] = {}
        self._resolution_stack: List[Type[Any]] = []

    def register_instance(self, service_type: Type[T], instance: T) -> None:
        self._services[service_type] = ServiceRegistration(service_type, instance=instance)
        logger.debug(f"Registered instance for {service_type.__name__}")

    def register_factory(self, service_type: Type[T], factory: Callable[[IContainer], T]) -> None:
        self._services[service_type] = ServiceRegistration(service_type, factory=factory)
        logger.debug(f"Registered factory for {service_type.__name__}")

    def resolve(self, service_type: Type[T]) -> T:
        if service_type in self._resolution_stack:
            cycle = " -> ".join([t.__name__ for t in self._resolution_stack] +
                                [service_type.__name__])
            raise CircularDependencyException(
                f"Circular dependency detected: {cycle}")

        registration = self._services.get(service_type)
        if registration is None:
            raise ServiceNotRegisteredException(
                f"Service {service_type.__name__} is not registered")

        if registration.instance is not None:
            return registration.instance  # type: ignore[no-any-return]

        assert registration.factory is not None
        self._resolution_stack.append(service_type)
        try:
            registration.instance = registration.factory(self)
            return registration.instance  # type: ignore[no-any-return]
        except CircularDependencyException:
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {service_type.__name__}: {str(e)}") from e
        finally:
            self._resolution_stack.pop()

    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        try:
            return self.resolve(service_type)
        except (ServiceNotRegisteredException, ServiceResolutionException, CircularDependencyException):
            return None

    def is_registered(self, service_type: Type[Any]) -> bool:
        return service_type in self._services

    def get_registrations(self) -> Dict[Type[Any], ServiceRegistration]:
        """Get all service registrations (for health reporting)."""
        return self._services.copy()
