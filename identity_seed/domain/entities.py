from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# --- Enums / Literals ---
ROLE_ADMIN = "admin"

FailureReason = Literal["conflict", "not_found", "bad_request", "unexpected"]

API_KEY_SEPARATOR = "."

T = TypeVar("T")


# --- Participants ---

class KeyDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_id: str
    private_key_alias: str
    key_generator_params: dict[str, Any] = Field(default_factory=dict)
    active: bool = True


class ParticipantManifest(BaseModel):
    """Request to create a participant in the directory."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    did: str
    active: bool = True
    key: KeyDescriptor
    roles: tuple[str, ...] = ()


class Participant(BaseModel):
    participant_id: str
    did: str
    active: bool = True
    roles: list[str] = Field(default_factory=list)
    api_token_alias: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GeneratedCredential(BaseModel):
    """Credential minted by the directory when a participant is created."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    api_key: str = Field(repr=False)
    api_token_alias: str


# --- Results ---

@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Outcome of a call into an external collaborator (directory, vault)."""

    succeeded: bool
    content: T | None = None
    failure_detail: str | None = None
    reason: FailureReason | None = None

    @classmethod
    def success(cls, content: T | None = None) -> ServiceResult[T]:
        return cls(succeeded=True, content=content)

    @classmethod
    def failure(cls, detail: str, reason: FailureReason = "unexpected") -> ServiceResult[T]:
        return cls(succeeded=False, failure_detail=detail, reason=reason)

    @property
    def failed(self) -> bool:
        return not self.succeeded


# --- API keys ---

def format_api_key(participant_id: str, random_part: str) -> str:
    """Build an API key as base64(participantId).random."""
    encoded = base64.b64encode(participant_id.encode()).decode()
    return f"{encoded}{API_KEY_SEPARATOR}{random_part}"


def looks_like_api_key(value: str) -> bool:
    return API_KEY_SEPARATOR in value
