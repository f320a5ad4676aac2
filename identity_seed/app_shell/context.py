from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from identity_seed.adapters.keys import Ed25519KeyGenerator
from identity_seed.adapters.sqlite.migrator import FileScriptSource, SQLiteConnector
from identity_seed.adapters.sqlite.participants import SQLiteParticipantDirectory
from identity_seed.adapters.sqlite.vault import SQLiteVault
from identity_seed.app_shell.config import Settings
from identity_seed.components.migrations.ports import (
    MigrationStoreConnector,
    ScriptSourcePort,
    SecretResolverPort,
)
from identity_seed.components.superuser.ports import ParticipantDirectoryPort, VaultPort


class Vault(SecretResolverPort, VaultPort, Protocol):
    """Both sides of the secret store."""


@dataclass
class ServiceContext:
    settings: Settings
    vault: Vault
    directory: ParticipantDirectoryPort
    connector: MigrationStoreConnector
    scripts: ScriptSourcePort

    @classmethod
    def create(cls, settings: Settings) -> ServiceContext:
        Path(settings.data_dir).mkdir(parents=True, exist_ok=True)

        vault = SQLiteVault(settings.db_path)
        directory = SQLiteParticipantDirectory(
            settings.db_path, vault=vault, key_generator=Ed25519KeyGenerator()
        )
        return cls(
            settings=settings,
            vault=vault,
            directory=directory,
            connector=SQLiteConnector(),
            scripts=FileScriptSource(settings.scripts_dir),
        )
