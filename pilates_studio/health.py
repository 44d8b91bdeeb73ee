"""
Health probes and their aggregate report.

Three independent probes (database, cache, dependent services) each return
a ProbeResult. The overall status is the worst of them, with the cache
probe never counting as worse than Degraded.
"""
from __future__ import annotations

import enum
import logging
import os
import platform
import time
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable

import psutil
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from .auth_models import User
from .cache import MemoryCache
from .config import Settings
from .db import utcnow
from .models import Class, Student
from .registry import ServiceScope

log = logging.getLogger(__name__)

CACHE_SENTINEL_KEY = "health_check_test"

CRITICAL_SERVICES = (
    "StudentService",
    "AnalyticsService",
    "PaymentService",
    "ReservationService",
    "AuthService",
)


class HealthStatus(str, enum.Enum):
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst_of(cls, *statuses: "HealthStatus") -> "HealthStatus":
        if not statuses:
            return cls.HEALTHY
        return max(statuses, key=lambda s: s.severity)

    def capped(self, ceiling: "HealthStatus") -> "HealthStatus":
        return self if self.severity <= ceiling.severity else ceiling


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


@dataclass
class ProbeResult:
    status: HealthStatus
    description: str
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


# =========================
# Probes
# =========================
def check_database(session: Session) -> ProbeResult:
    """SELECT 1 plus three row counts. Single attempt."""
    try:
        session.execute(text("SELECT 1"))
        data = {
            "users": session.execute(select(func.count(User.id))).scalar_one(),
            "students": session.execute(select(func.count(Student.id))).scalar_one(),
            "classes": session.execute(select(func.count(Class.id))).scalar_one(),
            "database_provider": session.get_bind().dialect.name,
        }
        return ProbeResult(HealthStatus.HEALTHY, "Database is accessible and responsive", data)
    except Exception as exc:
        log.error("Database health check failed: %s", exc)
        with suppress(Exception):
            session.rollback()
        return ProbeResult(
            HealthStatus.UNHEALTHY,
            "Database is not accessible",
            {"error": str(exc)},
            error=str(exc),
        )


def check_cache(cache: MemoryCache) -> ProbeResult:
    """Write/read round-trip of a sentinel key. Failures here are only Degraded."""
    try:
        expected = utcnow().isoformat()
        cache.set(CACHE_SENTINEL_KEY, expected, ttl=timedelta(seconds=1))
        if cache.get(CACHE_SENTINEL_KEY) != expected:
            return ProbeResult(HealthStatus.DEGRADED, "Cache read/write operations are not working correctly")
        data = {
            "cache_type": getattr(cache, "cache_type", type(cache).__name__),
            "cached_items_count": cache.count,
            "test_successful": True,
        }
        return ProbeResult(HealthStatus.HEALTHY, "Memory cache is working correctly", data)
    except Exception as exc:
        log.warning("Cache health check failed: %s", exc)
        return ProbeResult(HealthStatus.DEGRADED, "Memory cache is not working", {"error": str(exc)}, error=str(exc))
    finally:
        with suppress(Exception):
            cache.remove(CACHE_SENTINEL_KEY)


def _check_service(scope: ServiceScope, name: str, data: dict[str, Any], issues: list[str]) -> None:
    key = name.lower()
    try:
        if not scope.is_registered(name):
            issues.append(f"{name} not registered")
            data[f"{key}_status"] = "Not Registered"
            return
        scope.resolve(name)
        data[f"{key}_status"] = "Available"
    except Exception as exc:
        issues.append(f"{name}: {exc}")
        data[f"{key}_status"] = "Error"
        data[f"{key}_error"] = str(exc)


def check_services(scope: ServiceScope, settings: Settings) -> ProbeResult:
    """Resolves each critical service; problems are issues (Degraded), not failures."""
    data: dict[str, Any] = {}
    issues: list[str] = []
    try:
        for name in CRITICAL_SERVICES:
            _check_service(scope, name, data, issues)

        data["services_checked"] = len(CRITICAL_SERVICES)
        data["timestamp"] = utcnow().isoformat()
        data["environment"] = settings.environment
        data["machine_name"] = platform.node()
        data["process_id"] = os.getpid()
        data["working_set"] = psutil.Process().memory_info().rss

        if issues:
            data["issues"] = issues
            return ProbeResult(
                HealthStatus.DEGRADED,
                f"Some services have issues: {', '.join(issues)}",
                data,
            )
        return ProbeResult(HealthStatus.HEALTHY, "All critical services are available and responding", data)
    except Exception as exc:
        data["error"] = str(exc)
        return ProbeResult(HealthStatus.UNHEALTHY, "API health check failed", data, error=str(exc))


# =========================
# Aggregation
# =========================
@dataclass
class HealthCheck:
    name: str
    probe: Callable[[], ProbeResult]
    ceiling: HealthStatus = HealthStatus.UNHEALTHY


def run_health_checks(checks: list[HealthCheck]) -> dict[str, Any]:
    """Runs every check; a probe that raises becomes an Unhealthy entry."""
    started = time.perf_counter()
    entries: dict[str, Any] = {}
    statuses: list[HealthStatus] = []

    for check in checks:
        t0 = time.perf_counter()
        try:
            result = check.probe()
        except Exception as exc:
            log.exception("Health check %s raised", check.name)
            result = ProbeResult(HealthStatus.UNHEALTHY, f"{check.name} check failed", {"error": str(exc)}, str(exc))
        status = result.status.capped(check.ceiling)
        statuses.append(status)
        entries[check.name] = {
            "status": status.value,
            "description": result.description,
            "duration": round(time.perf_counter() - t0, 4),
            "data": result.data,
        }

    overall = HealthStatus.worst_of(*statuses)
    if overall is not HealthStatus.HEALTHY:
        log.warning("Health status %s", overall.value)
    return {
        "status": overall.value,
        "total_duration": round(time.perf_counter() - started, 4),
        "checks": entries,
    }


def default_checks(session: Session, cache: MemoryCache, scope: ServiceScope, settings: Settings) -> list[HealthCheck]:
    return [
        HealthCheck("database", lambda: check_database(session)),
        HealthCheck("memory_cache", lambda: check_cache(cache), ceiling=HealthStatus.DEGRADED),
        HealthCheck("api_services", lambda: check_services(scope, settings)),
    ]
