"""Migration component.

Applies pending versioned SQL scripts for a named storage subsystem.
"""

from .component import migrate, resolve_credentials, run, run_migrations
from .models import (
    AppliedMigration,
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

__all__ = [
    # Entry points
    "run",
    "run_migrations",
    "migrate",
    "resolve_credentials",
    # Models
    "AppliedMigration",
    "DatasourceCredentials",
    "MigrateInput",
    "MigrateOutput",
    "MigrationError",
    "MigrationScript",
    # Ports
    "MigrationStoreConnector",
    "MigrationStorePort",
    "ScriptSourcePort",
    "SecretResolverPort",
]
