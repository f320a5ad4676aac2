"""Migration component port definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import AppliedMigration, DatasourceCredentials, MigrationScript


class SecretResolverPort(Protocol):
    """Read access to the secret store."""

    def resolve_secret(self, alias: str) -> str | None:
        ...


class MigrationStorePort(Protocol):
    """An open connection to one subsystem's relational store."""

    def has_history(self) -> bool:
        """Whether the schema history table exists. Never creates it."""
        ...

    def ensure_history(self) -> None:
        """Create the subsystem's schema history table if missing."""
        ...

    def current_version(self) -> int | None:
        """Highest recorded version, or None for an empty history."""
        ...

    def applied(self) -> list[AppliedMigration]:
        ...

    def apply(self, script: MigrationScript) -> bool:
        """Run the script and record its version in one exclusive transaction.

        Returns False if the version was already recorded by another runner.
        Raises on script failure after rolling back.
        """
        ...

    def close(self) -> None:
        ...


class MigrationStoreConnector(Protocol):
    def connect(self, credentials: DatasourceCredentials) -> MigrationStorePort:
        ...


class ScriptSourcePort(Protocol):
    def list_scripts(self, subsystem: str) -> list[MigrationScript]:
        """All known scripts for the subsystem, in any order."""
        ...
