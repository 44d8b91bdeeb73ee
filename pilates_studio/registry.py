"""
Name -> factory table for the request-scoped services.

Routers and the health probe ask a `ServiceScope` for a service by name;
the scope builds it once against the request's Session and reuses it.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from .analytics import AnalyticsService
from .auth_service import AuthService
from .billing import PackageService, PaymentService, PurchaseService
from .cache import MemoryCache
from .config import Settings
from .services import (
    AttendanceService,
    ClassService,
    InstructorService,
    ReservationService,
    StudentService,
    ZoneService,
)


class ServiceNotRegistered(LookupError):
    pass


class ServiceScope:
    """Services bound to one Session (one request)."""

    def __init__(self, registry: "ServiceRegistry", session: Session, cache: MemoryCache, settings: Settings):
        self.registry = registry
        self.session = session
        self.cache = cache
        self.settings = settings
        self._instances: Dict[str, Any] = {}

    def is_registered(self, name: str) -> bool:
        return name in self.registry

    def resolve(self, name: str) -> Any:
        if name not in self._instances:
            self._instances[name] = self.registry.factory(name)(self)
        return self._instances[name]


Factory = Callable[[ServiceScope], Any]


class ServiceRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, Factory] = {}

    def register(self, name: str, factory: Factory) -> None:
        self._factories[name] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def factory(self, name: str) -> Factory:
        try:
            return self._factories[name]
        except KeyError:
            raise ServiceNotRegistered(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def scope(self, session: Session, cache: MemoryCache, settings: Settings) -> ServiceScope:
        return ServiceScope(self, session, cache, settings)


def default_registry() -> ServiceRegistry:
    registry = ServiceRegistry()
    registry.register("ZoneService", lambda s: ZoneService(s.session))
    registry.register("InstructorService", lambda s: InstructorService(s.session, s.settings))
    registry.register("StudentService", lambda s: StudentService(s.session, s.settings))
    registry.register("ClassService", lambda s: ClassService(s.session))
    registry.register("ReservationService", lambda s: ReservationService(s.session))
    registry.register("AttendanceService", lambda s: AttendanceService(s.session))
    registry.register("PackageService", lambda s: PackageService(s.session))
    registry.register("PurchaseService", lambda s: PurchaseService(s.session))
    registry.register("PaymentService", lambda s: PaymentService(s.session))
    registry.register("AnalyticsService", lambda s: AnalyticsService(s.session, s.cache, s.settings))
    registry.register("AuthService", lambda s: AuthService(s.session, s.settings))
    return registry
