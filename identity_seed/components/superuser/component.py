"""Super-user seed component implementation.

Ensures the privileged super-user participant exists. Creates it with an
Ed25519 key and the admin role if absent, applies an operator-supplied API
key override, and prints the effective API key exactly once.
"""

from __future__ import annotations

import logging

from identity_seed.domain.entities import (
    ROLE_ADMIN,
    KeyDescriptor,
    ParticipantManifest,
    looks_like_api_key,
)

from .models import (
    ApiKeySource,
    SeedState,
    SeedWarning,
    SuperUserSeedError,
    SuperUserSeedInput,
    SuperUserSeedOutput,
)
from .ports import ParticipantDirectoryPort, VaultPort

logger = logging.getLogger(__name__)

SUPER_USER_KEY_PARAMS = {"algorithm": "EdDSA", "curve": "Ed25519"}

MALFORMED_OVERRIDE_MESSAGE = (
    "Super-user key override: this key appears to have an invalid format, "
    "you may be unable to access some APIs. It must follow the structure: "
    "'base64(<participantId>).<random-string>'"
)


def build_superuser_manifest(participant_id: str) -> ParticipantManifest:
    """Manifest for the super-user. The DID is metadata only and never resolved."""
    return ParticipantManifest(
        participant_id=participant_id,
        did=f"did:web:{participant_id}",
        active=True,
        key=KeyDescriptor(
            key_id=f"{participant_id}-key",
            private_key_alias=f"{participant_id}-alias",
            key_generator_params=dict(SUPER_USER_KEY_PARAMS),
        ),
        roles=(ROLE_ADMIN,),
    )


def _apply_override(
    participant_id: str,
    override_key: str,
    directory: ParticipantDirectoryPort,
    vault: VaultPort,
) -> tuple[bool, list[SeedWarning]]:
    """Write the override key under the participant's token alias.

    Failures are warnings: the participant keeps its generated key.
    """
    warnings: list[SeedWarning] = []

    if not looks_like_api_key(override_key):
        logger.warning(MALFORMED_OVERRIDE_MESSAGE)
        warnings.append(SeedWarning.MALFORMED_OVERRIDE)

    lookup = directory.get(participant_id)
    if lookup.failed or lookup.content is None:
        logger.warning(
            f"Error overriding API key for '{participant_id}': {lookup.failure_detail}"
        )
        warnings.append(SeedWarning.OVERRIDE_LOOKUP_FAILED)
        return False, warnings

    stored = vault.store_secret(lookup.content.api_token_alias, override_key)
    if stored.failed:
        logger.warning(f"Error storing API key in vault: {stored.failure_detail}")
        warnings.append(SeedWarning.OVERRIDE_STORE_FAILED)
        return False, warnings

    logger.debug("Super-user key override successful")
    return True, warnings


def run_seed(
    seed_input: SuperUserSeedInput,
    directory: ParticipantDirectoryPort,
    vault: VaultPort,
) -> SuperUserSeedOutput:
    """Execute the super-user seed.

    Args:
        seed_input: Participant id and optional API key override.
        directory: Participant directory (existence, creation, lookup).
        vault: Secret store used for the API key override.

    Returns:
        SuperUserSeedOutput describing what happened.

    Raises:
        SuperUserSeedError: The directory rejected the creation for any reason
            other than the participant already existing.
    """
    participant_id = seed_input.participant_id

    # 1. Existing super-user is a no-op
    if directory.exists(participant_id):
        logger.debug(
            f"super-user already exists with ID '{participant_id}', will not re-create"
        )
        return SuperUserSeedOutput.already_exists(participant_id)

    # 2. Create
    created = directory.create(build_superuser_manifest(participant_id))
    if created.failed or created.content is None:
        if created.reason == "conflict":
            # another instance won the race
            logger.info(
                f"super-user '{participant_id}' was created concurrently, will not re-create"
            )
            return SuperUserSeedOutput.already_exists(participant_id)
        logger.error(f"Error creating Super-User '{participant_id}': {created.failure_detail}")
        raise SuperUserSeedError(participant_id, created.failure_detail or "unknown error")

    # 3. Resolve the effective key
    api_key = created.content.api_key
    source: ApiKeySource = "generated"
    override_applied = False
    warnings: list[SeedWarning] = []

    override_key = seed_input.api_key_override
    if override_key:
        override_applied, warnings = _apply_override(
            participant_id, override_key, directory, vault
        )
        api_key = override_key
        source = "override"

    # 4. The only place the key is ever shown
    logger.info(f"Created user '{participant_id}'. Please take note of the API Key: {api_key}")

    return SuperUserSeedOutput(
        participant_id=participant_id,
        state=SeedState.CREDENTIAL_RESOLVED,
        created=True,
        api_key_source=source,
        override_applied=override_applied,
        warnings=tuple(warnings),
    )


def run(
    seed_input: SuperUserSeedInput,
    directory: ParticipantDirectoryPort,
    vault: VaultPort,
) -> SuperUserSeedOutput:
    """Main entry point for the super-user seed component."""
    return run_seed(seed_input, directory, vault)


ensure_super_user = run
