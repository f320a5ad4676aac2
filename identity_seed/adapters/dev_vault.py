"""
In-memory vault (dev).

Secrets live for the lifetime of the process only. Satisfies both the
write side used by the super-user seed and the read side used by migrations.
"""

from __future__ import annotations

import logging

from identity_seed.domain.entities import ServiceResult

logger = logging.getLogger(__name__)


class InMemoryVault:
    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        self._secrets: dict[str, str] = dict(secrets or {})

    def resolve_secret(self, alias: str) -> str | None:
        return self._secrets.get(alias)

    def store_secret(self, alias: str, value: str) -> ServiceResult[None]:
        if not alias:
            return ServiceResult.failure("Secret alias must not be empty", "bad_request")
        self._secrets[alias] = value
        logger.debug(f"Stored secret '{alias}'")
        return ServiceResult.success()

    def delete_secret(self, alias: str) -> ServiceResult[None]:
        if alias not in self._secrets:
            return ServiceResult.failure(f"Secret '{alias}' not found", "not_found")
        del self._secrets[alias]
        return ServiceResult.success()
