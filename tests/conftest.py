import logging
from pathlib import Path

import pytest

from identity_seed.app_shell.config import build_settings
from identity_seed.app_shell.context import ServiceContext
from identity_seed.rules.models import Rules
from identity_seed.shell.http.health import HealthCheckRegistry, StartupTracker

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def migrations_dir() -> Path:
    # Real scripts, so their SQL is exercised too
    return PROJECT_ROOT / "migrations"


@pytest.fixture
def rules_path(tmp_path, migrations_dir) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(
        "superuser:\n"
        "  participant_id: super-user\n"
        "migrations:\n"
        f"  scripts_dir: {migrations_dir}\n"
        "  subsystems:\n"
        "    - name: vault\n"
        "    - name: participantcontext\n"
        "    - name: stsclient\n"
        "datasource:\n"
        f"  data_dir: {tmp_path / 'data'}\n"
    )
    return path


@pytest.fixture
def make_ctx(tmp_path, migrations_dir):
    """
    Build a ServiceContext backed by a temporary SQLite database.
    Pass an environ dict to simulate IH_* overrides.
    """

    def _make(environ: dict[str, str] | None = None) -> ServiceContext:
        rules = Rules.model_validate(
            {
                "migrations": {
                    "scripts_dir": str(migrations_dir),
                    "subsystems": [
                        {"name": "vault"},
                        {"name": "participantcontext"},
                        {"name": "stsclient"},
                    ],
                },
                "datasource": {"data_dir": str(tmp_path / "data")},
            }
        )
        settings = build_settings(rules, tmp_path / "rules.yaml", environ or {})
        return ServiceContext.create(settings)

    return _make


@pytest.fixture
def registry():
    """Create a fresh registry for testing."""
    StartupTracker.reset()
    yield HealthCheckRegistry()
    StartupTracker.reset()


@pytest.fixture
def seed_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="identity_seed")
    return caplog
