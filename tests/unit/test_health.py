"""
Tests for health endpoints and startup readiness checks.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from identity_seed.components.migrations.models import MigrateOutput
from identity_seed.shell.http.health import (
    CheckResult,
    HealthStatus,
    SchemaCheck,
    StartupCheck,
    StartupTracker,
    SuperUserCheck,
    create_health_router,
)

# --- Test Fixtures ---


@pytest.fixture
def client(registry) -> TestClient:
    app = FastAPI()
    app.include_router(create_health_router(version="1.2.3", registry=registry))
    return TestClient(app)


def at_version(subsystem: str, current: int | None, latest: int | None) -> MigrateOutput:
    return MigrateOutput(
        subsystem=subsystem,
        previous_version=None,
        current_version=current,
        latest_version=latest,
    )


class StaticCheck:
    def __init__(self, name: str, status: HealthStatus) -> None:
        self.name = name
        self._status = status

    def check(self) -> CheckResult:
        return CheckResult(name=self.name, status=self._status)


# --- Checks ---


def test_startup_check_before_and_after(registry):
    check = StartupCheck()
    assert check.check().status == HealthStatus.UNHEALTHY

    StartupTracker.mark_started()
    assert check.check().status == HealthStatus.HEALTHY


def test_schema_check_healthy_when_all_at_latest():
    check = SchemaCheck(
        [
            at_version("vault", 1, 1),
            at_version("stsclient", 2, 2),
            MigrateOutput.skipped("disabled", "Migrations disabled for subsystem"),
        ]
    )

    result = check.check()

    assert result.status == HealthStatus.HEALTHY
    assert result.details["stsclient"] == {"version": 2, "latest": 2, "skipped": False}
    assert result.details["disabled"]["skipped"] is True


def test_schema_check_unhealthy_when_behind():
    result = SchemaCheck([at_version("stsclient", 1, 2)]).check()

    assert result.status == HealthStatus.UNHEALTHY
    assert "stsclient" in result.message


def test_superuser_check():
    assert SuperUserCheck("super-user", lambda _id: True).check().status == HealthStatus.HEALTHY
    assert SuperUserCheck("super-user", lambda _id: False).check().status == HealthStatus.UNHEALTHY


def test_superuser_check_directory_error():
    def broken(_id: str) -> bool:
        raise RuntimeError("no such table: participants")

    result = SuperUserCheck("super-user", broken).check()

    assert result.status == HealthStatus.UNHEALTHY
    assert "no such table" in result.message


def test_register_replaces_same_name(registry):
    registry.register(StaticCheck("schema", HealthStatus.UNHEALTHY))
    registry.register(StaticCheck("schema", HealthStatus.HEALTHY))

    assert [r.status for r in registry.run_all()] == [HealthStatus.HEALTHY]


# --- Endpoints ---


def test_not_ready_without_checks(client):
    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["ready"] is False


def test_ready_when_all_checks_pass(client, registry):
    registry.register(StaticCheck("a", HealthStatus.HEALTHY))
    registry.register(StaticCheck("b", HealthStatus.HEALTHY))

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["ready"] is True


def test_health_reports_unhealthy(client, registry):
    registry.register(StaticCheck("a", HealthStatus.HEALTHY))
    registry.register(StaticCheck("b", HealthStatus.UNHEALTHY))

    response = client.get("/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["version"] == "1.2.3"
    assert [c["name"] for c in body["checks"]] == ["a", "b"]


def test_health_degraded(client, registry):
    registry.register(StaticCheck("a", HealthStatus.DEGRADED))

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_liveness_always_ok(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["alive"] is True
