"""
Health endpoints.

Key behaviors:
- /health: Overall status of all registered checks
- /health/ready: Readiness probe; ready once startup migrated every
  subsystem and the super-user exists
- /health/live: Liveness probe (process alive)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from identity_seed.components.migrations.models import MigrateOutput

# --- Types ---


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


# --- Health Check Protocol ---


class HealthCheck(Protocol):
    """Protocol for health checks."""

    name: str

    def check(self) -> CheckResult:
        """Run the health check and return result."""
        ...


# --- Startup Tracker ---


class StartupTracker:
    """Tracks application startup time for uptime calculation."""

    _start_time: float | None = None

    @classmethod
    def mark_started(cls) -> None:
        """Mark the application as started."""
        cls._start_time = time.time()

    @classmethod
    def get_uptime_seconds(cls) -> float:
        """Get uptime in seconds since start."""
        if cls._start_time is None:
            return 0.0
        return time.time() - cls._start_time

    @classmethod
    def is_started(cls) -> bool:
        """Check if application has been marked as started."""
        return cls._start_time is not None

    @classmethod
    def reset(cls) -> None:
        cls._start_time = None


# --- Health Check Registry ---


class HealthCheckRegistry:
    """Registry of health checks to run."""

    def __init__(self) -> None:
        """Initialize registry."""
        self._checks: list[HealthCheck] = []

    def register(self, check: HealthCheck) -> None:
        """Register a health check, replacing any check with the same name."""
        self._checks = [c for c in self._checks if c.name != check.name]
        self._checks.append(check)

    def run_all(self) -> list[CheckResult]:
        """Run all registered checks."""
        return [check.check() for check in self._checks]

    def clear(self) -> None:
        """Clear all registered checks."""
        self._checks = []


# Global registry instance
_registry = HealthCheckRegistry()


def get_health_registry() -> HealthCheckRegistry:
    """Get the global health check registry."""
    return _registry


# --- Built-in Checks ---


class StartupCheck:
    """Check if application has completed startup."""

    name = "startup"

    def check(self) -> CheckResult:
        if StartupTracker.is_started():
            return CheckResult(
                name=self.name,
                status=HealthStatus.HEALTHY,
                message="Startup complete",
                details={"uptime_seconds": StartupTracker.get_uptime_seconds()},
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.UNHEALTHY,
            message="Startup not complete",
        )


class SchemaCheck:
    """Reports whether every enabled subsystem reached its latest schema version."""

    name = "schema"

    def __init__(self, results: Sequence[MigrateOutput]) -> None:
        self._results = list(results)

    def check(self) -> CheckResult:
        details = {
            r.subsystem: {
                "version": r.current_version,
                "latest": r.latest_version,
                "skipped": r.skipped_reason is not None,
            }
            for r in self._results
        }
        behind = [
            r.subsystem for r in self._results if r.skipped_reason is None and not r.up_to_date
        ]
        if behind:
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Schema behind for: {', '.join(behind)}",
                details=details,
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="All subsystems at latest version",
            details=details,
        )


class SuperUserCheck:
    """Checks that the super-user participant exists."""

    name = "superuser"

    def __init__(self, participant_id: str, exists_fn: Callable[[str], bool]) -> None:
        self._participant_id = participant_id
        self._exists_fn = exists_fn

    def check(self) -> CheckResult:
        start = time.time()
        try:
            found = self._exists_fn(self._participant_id)
        except Exception as e:
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Directory error: {e!s}",
                latency_ms=(time.time() - start) * 1000,
            )
        latency = (time.time() - start) * 1000
        if not found:
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Super-user '{self._participant_id}' not found",
                latency_ms=latency,
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message=f"Super-user '{self._participant_id}' present",
            latency_ms=latency,
        )


# --- FastAPI Router ---


def _overall(results: list[CheckResult]) -> HealthStatus:
    if all(r.status == HealthStatus.HEALTHY for r in results):
        return HealthStatus.HEALTHY
    if any(r.status == HealthStatus.UNHEALTHY for r in results):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


def create_health_router(
    version: str = "0.0.0",
    registry: HealthCheckRegistry | None = None,
) -> APIRouter:
    """
    Create FastAPI router for health endpoints.

    Args:
        version: Application version string
        registry: Health check registry (uses global if None)
    """
    router = APIRouter(tags=["health"])
    reg = registry or get_health_registry()

    @router.get(
        "/health",
        response_model=None,
        responses={
            200: {"description": "Service is healthy"},
            503: {"description": "Service is unhealthy"},
        },
    )
    def health_check() -> JSONResponse:
        results = reg.run_all()
        overall = _overall(results)

        response = {
            "status": overall.value,
            "version": version,
            "uptime_seconds": StartupTracker.get_uptime_seconds(),
            "checks": [
                {
                    "name": r.name,
                    "status": r.status.value,
                    "message": r.message,
                    "latency_ms": r.latency_ms,
                    "details": r.details,
                }
                for r in results
            ],
        }

        status_code = (
            status.HTTP_200_OK
            if overall == HealthStatus.HEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return JSONResponse(content=response, status_code=status_code)

    @router.get(
        "/health/ready",
        response_model=None,
        responses={
            200: {"description": "Service is ready to accept traffic"},
            503: {"description": "Service is not ready"},
        },
    )
    def readiness_check() -> JSONResponse:
        """Ready only when every check passes; startup registers its own checks."""
        results = reg.run_all()
        is_ready = bool(results) and all(r.status == HealthStatus.HEALTHY for r in results)

        response = {
            "ready": is_ready,
            "checks": [
                {"name": r.name, "status": r.status.value, "message": r.message} for r in results
            ],
        }
        status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(content=response, status_code=status_code)

    @router.get(
        "/health/live",
        response_model=None,
        responses={
            200: {"description": "Service process is alive"},
        },
    )
    def liveness_check() -> JSONResponse:
        return JSONResponse(
            content={"alive": True, "uptime_seconds": StartupTracker.get_uptime_seconds()},
            status_code=status.HTTP_200_OK,
        )

    return router
