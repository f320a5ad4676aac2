"""
Startup settings.

rules.yaml supplies the defaults; IH_* environment variables override them.
Settings are read once and stay immutable for the process lifetime.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from identity_seed.components.migrations.models import MigrateInput
from identity_seed.components.superuser.models import SuperUserSeedInput
from identity_seed.rules.loader import load_rules
from identity_seed.rules.models import Rules

DEFAULT_RULES_PATH = "rules.yaml"

ENV_RULES_PATH = "IH_RULES_PATH"
ENV_DATA_DIR = "IH_DATA_DIR"
ENV_SUPERUSER_ID = "IH_SUPERUSER_ID"
ENV_SUPERUSER_KEY = "IH_SUPERUSER_KEY"
ENV_MIGRATION_ENABLED = "IH_MIGRATION_{name}_ENABLED"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    rules_path: Path
    data_dir: Path
    db_path: str
    scripts_dir: str
    superuser: SuperUserSeedInput
    subsystems: tuple[MigrateInput, ...]

    def subsystem(self, name: str) -> MigrateInput:
        for migrate_input in self.subsystems:
            if migrate_input.subsystem == name:
                return migrate_input
        raise KeyError(f"Unknown subsystem '{name}'")


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def build_settings(
    rules: Rules, rules_path: Path, environ: Mapping[str, str] | None = None
) -> Settings:
    """Combine validated rules with environment overrides."""
    env = os.environ if environ is None else environ

    data_dir = Path(env.get(ENV_DATA_DIR) or rules.datasource.data_dir)
    db_path = str(data_dir / rules.datasource.db_filename)

    scripts_dir = Path(rules.migrations.scripts_dir)
    if not scripts_dir.is_absolute():
        scripts_dir = rules_path.parent / scripts_dir

    participant_id = env.get(ENV_SUPERUSER_ID) or rules.superuser.participant_id
    # an empty override means "use the generated key"
    api_key = env.get(ENV_SUPERUSER_KEY) or rules.superuser.api_key or None

    subsystems = []
    for subsystem in rules.migrations.subsystems:
        env_name = ENV_MIGRATION_ENABLED.format(name=subsystem.name.upper())
        enabled = subsystem.enabled
        if env_name in env:
            enabled = _parse_bool(env_name, env[env_name])
        subsystems.append(
            MigrateInput(
                subsystem=subsystem.name,
                url=subsystem.url or db_path,
                user=subsystem.user,
                enabled=enabled,
            )
        )

    return Settings(
        rules_path=rules_path,
        data_dir=data_dir,
        db_path=db_path,
        scripts_dir=str(scripts_dir),
        superuser=SuperUserSeedInput(participant_id=participant_id, api_key_override=api_key),
        subsystems=tuple(subsystems),
    )


def load_settings(
    rules_path: Path | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """
    Load rules.yaml and apply environment overrides.
    Raises FileNotFoundError / ValueError on a missing or invalid rules file.
    """
    env = os.environ if environ is None else environ
    path = rules_path or Path(env.get(ENV_RULES_PATH) or DEFAULT_RULES_PATH)
    rules = load_rules(path)
    return build_settings(rules, path, env)
