"""
Registry of the service objects exposed over HTTP.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .exceptions import ConfigurationError
from .naming import normalize_path


@dataclass(frozen=True)
class ServiceDescriptor:
    """Binds a URL path prefix to a service type and the factory creating its instances.

    The factory is called once per request, so service instances never share
    per-request state.
    """

    path_prefix: str
    service_type: type
    factory: Callable[[], Any]

    @classmethod
    def for_class(cls, path_prefix: str, service_type: type, factory: Optional[Callable[[], Any]] = None) -> "ServiceDescriptor":
        """Describe ``service_type``; by default instances are created by calling the class."""
        if not isinstance(service_type, type):
            raise ConfigurationError(f"Service type for '{path_prefix}' must be a class, got {service_type!r}")
        return cls(normalize_path(path_prefix, ""), service_type, factory or service_type)

    def create_instance(self) -> Any:
        return self.factory()


class ServiceRegistry:
    """Mapping from path prefix to :class:`ServiceDescriptor`.

    The registry is filled in at startup and frozen when an application is
    built from it; afterwards it is read-only.
    """

    def __init__(self, services: Optional[Dict[str, type]] = None):
        self._services: Dict[str, ServiceDescriptor] = {}
        self._frozen = False
        for prefix, service_type in (services or {}).items():
            self.register(prefix, service_type)

    def register(self, path_prefix: str, service_type: type, factory: Optional[Callable[[], Any]] = None) -> ServiceDescriptor:
        """Expose ``service_type`` under ``path_prefix``.

        Raises:
            ConfigurationError: if the registry is frozen or the prefix is taken
        """
        if self._frozen:
            raise ConfigurationError("Services cannot be registered after the application has been built")
        descriptor = ServiceDescriptor.for_class(path_prefix, service_type, factory)
        if descriptor.path_prefix in self._services:
            existing = self._services[descriptor.path_prefix].service_type
            raise ConfigurationError(
                f"Path prefix '{descriptor.path_prefix}' is already registered for {existing.__name__}"
            )
        self._services[descriptor.path_prefix] = descriptor
        return descriptor

    def service(self, path_prefix: str, factory: Optional[Callable[[], Any]] = None):
        """Class decorator registering a service.

        Example:
            @registry.service("/orders")
            class OrderService:
                def get_order(self, id: int) -> Order:
                    ...
        """

        def decorator(cls: type):
            self.register(path_prefix, cls, factory)
            return cls

        return decorator

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def descriptors(self) -> List[ServiceDescriptor]:
        """Registered services ordered by path prefix."""
        return [self._services[prefix] for prefix in sorted(self._services)]

    def get(self, path_prefix: str) -> Optional[ServiceDescriptor]:
        return self._services.get(normalize_path(path_prefix, ""))

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, path_prefix: str) -> bool:
        return normalize_path(path_prefix, "") in self._services
