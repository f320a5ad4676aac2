import pytest
from fastapi.testclient import TestClient

from identity_seed.api.main import create_app
from identity_seed.shell.http.health import get_health_registry


@pytest.fixture(autouse=True)
def clean_global_registry(registry):
    get_health_registry().clear()
    yield
    get_health_registry().clear()


def test_lifespan_runs_startup_and_reports_ready(rules_path, monkeypatch):
    monkeypatch.setenv("IH_RULES_PATH", str(rules_path))
    monkeypatch.delenv("IH_SUPERUSER_KEY", raising=False)
    app = create_app()

    with TestClient(app) as client:
        response = client.get("/health/ready")
        report = app.state.startup_report

    assert response.status_code == 200
    assert response.json()["ready"] is True
    assert report.superuser.participant_id == "super-user"
