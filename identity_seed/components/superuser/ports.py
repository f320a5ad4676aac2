"""Super-user seed component port definitions.

Protocol interfaces for the participant directory and the vault.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from identity_seed.domain.entities import (
        GeneratedCredential,
        Participant,
        ParticipantManifest,
        ServiceResult,
    )


class ParticipantDirectoryPort(Protocol):
    """Participant store that enforces unique participant ids."""

    def exists(self, participant_id: str) -> bool:
        """Whether a participant with this id is registered."""
        ...

    def create(self, manifest: ParticipantManifest) -> ServiceResult[GeneratedCredential]:
        """Create the participant, generate its key pair and API key.

        Must fail with reason "conflict" if the id is already taken.
        """
        ...

    def get(self, participant_id: str) -> ServiceResult[Participant]:
        """Fetch a participant by id."""
        ...


class VaultPort(Protocol):
    """Write access to the secret store."""

    def store_secret(self, alias: str, value: str) -> ServiceResult[None]:
        ...
