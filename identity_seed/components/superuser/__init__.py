"""Super-user seed component.

Provisions the privileged super-user participant on first startup.
"""

from .component import build_superuser_manifest, ensure_super_user, run, run_seed
from .models import (
    DEFAULT_SUPER_USER_PARTICIPANT_ID,
    SeedState,
    SeedWarning,
    SuperUserSeedError,
    SuperUserSeedInput,
    SuperUserSeedOutput,
)
from .ports import ParticipantDirectoryPort, VaultPort

__all__ = [
    # Entry points
    "run",
    "run_seed",
    "ensure_super_user",
    "build_superuser_manifest",
    # Models
    "DEFAULT_SUPER_USER_PARTICIPANT_ID",
    "SeedState",
    "SeedWarning",
    "SuperUserSeedError",
    "SuperUserSeedInput",
    "SuperUserSeedOutput",
    # Ports
    "ParticipantDirectoryPort",
    "VaultPort",
]
