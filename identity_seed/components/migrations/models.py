"""Migration component data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


class MigrationError(RuntimeError):
    """Raised when a subsystem schema cannot be brought up to date."""

    def __init__(self, subsystem: str, message: str, version: int | None = None) -> None:
        super().__init__(f"[{subsystem}] {message}")
        self.subsystem = subsystem
        self.version = version


@dataclass(frozen=True)
class MigrationScript:
    """One versioned SQL script for a subsystem."""

    version: int
    description: str
    filename: str
    sql: str = field(repr=False)
    checksum: str


@dataclass(frozen=True)
class AppliedMigration:
    """A row of the subsystem's schema history."""

    version: int
    description: str
    checksum: str
    applied_at: datetime | None = None


@dataclass(frozen=True)
class DatasourceCredentials:
    subsystem: str
    url: str
    user: str | None = None
    password: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class MigrateInput:
    """Input for migrating one subsystem."""

    subsystem: str
    url: str
    user: str | None = None
    enabled: bool = True

    @property
    def password_alias(self) -> str:
        return f"{self.subsystem}-datasource-password"


@dataclass(frozen=True)
class MigrateOutput:
    """Result of migrating one subsystem."""

    subsystem: str
    previous_version: int | None
    current_version: int | None
    applied: tuple[int, ...] = ()
    latest_version: int | None = None
    skipped_reason: str | None = None

    @classmethod
    def skipped(cls, subsystem: str, reason: str) -> MigrateOutput:
        return cls(
            subsystem=subsystem,
            previous_version=None,
            current_version=None,
            skipped_reason=reason,
        )

    @property
    def up_to_date(self) -> bool:
        return self.skipped_reason is None and self.current_version == self.latest_version
