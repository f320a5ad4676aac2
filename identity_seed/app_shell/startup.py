"""
Service startup.

Runs every enabled subsystem migration, then the super-user seed. Any fatal
error is raised as StartupError; the caller must not start serving.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from identity_seed.app_shell.context import ServiceContext
from identity_seed.components import migrations, superuser
from identity_seed.components.migrations.models import MigrateOutput, MigrationError
from identity_seed.components.superuser.models import SuperUserSeedError, SuperUserSeedOutput
from identity_seed.shell.http.health import (
    HealthCheckRegistry,
    SchemaCheck,
    StartupCheck,
    StartupTracker,
    SuperUserCheck,
    get_health_registry,
)

logger = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Startup failed; the service must not run."""


@dataclass(frozen=True)
class StartupReport:
    migrations: tuple[MigrateOutput, ...]
    superuser: SuperUserSeedOutput


def migrate_subsystems(
    ctx: ServiceContext, names: Iterable[str] | None = None
) -> tuple[MigrateOutput, ...]:
    """Migrate the configured subsystems, in configured order."""
    selected = ctx.settings.subsystems
    if names is not None:
        selected = tuple(ctx.settings.subsystem(name) for name in names)

    results = []
    for migrate_input in selected:
        try:
            results.append(
                migrations.run(migrate_input, ctx.vault, ctx.connector, ctx.scripts)
            )
        except MigrationError as e:
            logger.critical(f"Migration of '{e.subsystem}' failed: {e}")
            raise StartupError(str(e)) from e
        except Exception as e:
            logger.critical(f"Migration of '{migrate_input.subsystem}' failed: {e}")
            raise StartupError(f"[{migrate_input.subsystem}] {e}") from e
    return tuple(results)


def seed_superuser(ctx: ServiceContext) -> SuperUserSeedOutput:
    try:
        return superuser.ensure_super_user(ctx.settings.superuser, ctx.directory, ctx.vault)
    except SuperUserSeedError as e:
        logger.critical(str(e))
        raise StartupError(str(e)) from e
    except Exception as e:
        logger.critical(f"Super-user seed failed: {e}")
        raise StartupError(f"Super-user seed failed: {e}") from e


def run_startup(
    ctx: ServiceContext, registry: HealthCheckRegistry | None = None
) -> StartupReport:
    """Migrate, seed, then register readiness checks and mark startup complete."""
    reg = registry or get_health_registry()

    migrated = migrate_subsystems(ctx)
    seeded = seed_superuser(ctx)

    reg.register(StartupCheck())
    reg.register(SchemaCheck(migrated))
    reg.register(SuperUserCheck(seeded.participant_id, ctx.directory.exists))
    StartupTracker.mark_started()

    logger.info(
        f"Startup complete: {len(migrated)} subsystem(s) checked, "
        f"super-user '{seeded.participant_id}' {seeded.state.value}"
    )
    return StartupReport(migrations=migrated, superuser=seeded)
