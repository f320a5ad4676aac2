"""Super-user seed component data models.

Frozen dataclasses for inputs and outputs, plus the fatal error type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

DEFAULT_SUPER_USER_PARTICIPANT_ID = "super-user"

ApiKeySource = Literal["generated", "override"]


class SeedState(str, Enum):
    """Terminal state of a successful seed. Failure raises SuperUserSeedError."""

    EXISTS = "exists"
    CREDENTIAL_RESOLVED = "credential_resolved"


class SeedWarning(str, Enum):
    """Recovered problems that did not stop the seed."""

    MALFORMED_OVERRIDE = "malformed_override"
    OVERRIDE_LOOKUP_FAILED = "override_lookup_failed"
    OVERRIDE_STORE_FAILED = "override_store_failed"


class SuperUserSeedError(RuntimeError):
    """Raised when the super-user could not be created. Startup must abort."""

    def __init__(self, participant_id: str, detail: str) -> None:
        super().__init__(f"Error creating Super-User: {detail}")
        self.participant_id = participant_id
        self.detail = detail


@dataclass(frozen=True)
class SuperUserSeedInput:
    """Settings snapshot for the seed, read once at startup."""

    participant_id: str = DEFAULT_SUPER_USER_PARTICIPANT_ID
    api_key_override: str | None = None

    def __repr__(self) -> str:
        override = "<set>" if self.api_key_override else None
        return (
            f"SuperUserSeedInput(participant_id={self.participant_id!r}, "
            f"api_key_override={override!r})"
        )


@dataclass(frozen=True)
class SuperUserSeedOutput:
    """Result of a seed run. Never carries the plaintext API key."""

    participant_id: str
    state: SeedState
    created: bool
    api_key_source: ApiKeySource | None = None
    override_applied: bool = False
    warnings: tuple[SeedWarning, ...] = ()

    @classmethod
    def already_exists(cls, participant_id: str) -> SuperUserSeedOutput:
        return cls(participant_id=participant_id, state=SeedState.EXISTS, created=False)

    @property
    def success(self) -> bool:
        return self.state in (SeedState.EXISTS, SeedState.CREDENTIAL_RESOLVED)
