"""Migration component implementation.

Drives a named subsystem's schema to the latest known version. The same
routine serves every subsystem; only the subsystem name and its datasource
settings vary.
"""

from __future__ import annotations

import logging

from .models import (
    DatasourceCredentials,
    MigrateInput,
    MigrateOutput,
    MigrationError,
    MigrationScript,
)
from .ports import (
    MigrationStoreConnector,
    MigrationStorePort,
    ScriptSourcePort,
    SecretResolverPort,
)

logger = logging.getLogger(__name__)


def _ordered_scripts(subsystem: str, scripts: list[MigrationScript]) -> list[MigrationScript]:
    ordered = sorted(scripts, key=lambda s: s.version)
    seen: set[int] = set()
    for script in ordered:
        if script.version in seen:
            raise MigrationError(
                subsystem, f"Found more than one migration with version {script.version}",
                version=script.version,
            )
        seen.add(script.version)
    return ordered


def _validate_history(
    subsystem: str, store: MigrationStorePort, scripts: list[MigrationScript]
) -> None:
    """Applied migrations must still match the local scripts."""
    by_version = {s.version: s for s in scripts}
    for applied in store.applied():
        script = by_version.get(applied.version)
        if script is None:
            raise MigrationError(
                subsystem,
                f"Applied migration V{applied.version} ({applied.description}) not found locally",
                version=applied.version,
            )
        if script.checksum != applied.checksum:
            raise MigrationError(
                subsystem,
                f"Checksum mismatch for migration V{applied.version} ({script.filename})",
                version=applied.version,
            )


def resolve_credentials(
    migrate_input: MigrateInput, vault: SecretResolverPort
) -> DatasourceCredentials:
    password = vault.resolve_secret(migrate_input.password_alias)
    if password is None:
        logger.debug(
            f"No secret '{migrate_input.password_alias}' in vault, "
            f"connecting '{migrate_input.subsystem}' without password"
        )
    return DatasourceCredentials(
        subsystem=migrate_input.subsystem,
        url=migrate_input.url,
        user=migrate_input.user,
        password=password,
    )


def run_migrations(
    migrate_input: MigrateInput,
    vault: SecretResolverPort,
    connector: MigrationStoreConnector,
    scripts: ScriptSourcePort,
) -> MigrateOutput:
    """Apply pending migrations for one subsystem.

    Args:
        migrate_input: Subsystem name and datasource settings.
        vault: Secret store holding the datasource password.
        connector: Opens the subsystem's store.
        scripts: Source of the subsystem's versioned scripts.

    Returns:
        MigrateOutput with the versions before and after.

    Raises:
        MigrationError: History is inconsistent with the scripts, or a script
            failed. Scripts applied before the failure stay applied.
    """
    subsystem = migrate_input.subsystem
    if not migrate_input.enabled:
        logger.debug(f"Migrations for '{subsystem}' are disabled")
        return MigrateOutput.skipped(subsystem, "Migrations disabled for subsystem")

    ordered = _ordered_scripts(subsystem, scripts.list_scripts(subsystem))
    latest = ordered[-1].version if ordered else None

    store = connector.connect(resolve_credentials(migrate_input, vault))
    try:
        store.ensure_history()
        _validate_history(subsystem, store, ordered)

        previous = store.current_version()
        current = previous
        applied: list[int] = []

        for script in ordered:
            if previous is not None and script.version <= previous:
                continue
            logger.info(f"[{subsystem}] Applying migration V{script.version}: {script.filename}")
            try:
                did_apply = store.apply(script)
            except MigrationError:
                raise
            except Exception as e:
                logger.error(f"[{subsystem}] Migration V{script.version} failed: {e}")
                raise MigrationError(
                    subsystem,
                    f"Migration {script.filename} failed: {e}",
                    version=script.version,
                ) from e
            if did_apply:
                applied.append(script.version)
            else:
                logger.debug(
                    f"[{subsystem}] V{script.version} already applied by another instance"
                )
            current = script.version

        if applied:
            logger.info(f"[{subsystem}] Schema migrated from {previous} to {current}")
        else:
            logger.info(f"[{subsystem}] Schema up to date at version {current}")

        return MigrateOutput(
            subsystem=subsystem,
            previous_version=previous,
            current_version=current,
            applied=tuple(applied),
            latest_version=latest,
        )
    finally:
        store.close()


def run(
    migrate_input: MigrateInput,
    vault: SecretResolverPort,
    connector: MigrationStoreConnector,
    scripts: ScriptSourcePort,
) -> MigrateOutput:
    """Main entry point for the migration component."""
    return run_migrations(migrate_input, vault, connector, scripts)


migrate = run
