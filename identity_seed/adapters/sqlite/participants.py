"""
SQLite participant directory.

Stores participants and their key pairs in the tables created by the
`participantcontext` subsystem migrations. The participant_id primary key
makes creation atomically unique across instances sharing the database.
Private keys and generated API keys go to the vault, never to the tables.

A participant row is inserted unprovisioned and only marked provisioned once
both of its secrets are stored. Unprovisioned rows are invisible to exists()
and get(); one left behind by a crashed create is reclaimed by the next create
once it is older than `stale_after`.
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from identity_seed.adapters.keys import Ed25519KeyGenerator, KeyPair, UnsupportedKeyError
from identity_seed.domain.entities import (
    GeneratedCredential,
    Participant,
    ParticipantManifest,
    ServiceResult,
    format_api_key,
)

from .base import SQLiteRepoBase, parse_dt

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=5)


class SecretStore(Protocol):
    """Vault operations the directory needs to provision and clean up secrets."""

    def store_secret(self, alias: str, value: str) -> ServiceResult[None]: ...

    def delete_secret(self, alias: str) -> ServiceResult[None]: ...


def api_token_alias_for(participant_id: str) -> str:
    return f"{participant_id}-apikey"


class SQLiteParticipantDirectory(SQLiteRepoBase):
    """SQLite implementation of ParticipantDirectoryPort."""

    def __init__(
        self,
        db_path: str,
        vault: SecretStore,
        key_generator: Ed25519KeyGenerator | None = None,
        connection: sqlite3.Connection | None = None,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ):
        super().__init__(db_path, connection)
        self.vault = vault
        self.key_generator = key_generator or Ed25519KeyGenerator()
        self.stale_after = stale_after

    def exists(self, participant_id: str) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT 1 AS found FROM participants "
                "WHERE participant_id = ? AND provisioned = 1",
                (participant_id,),
            ).fetchone()
            return row is not None
        finally:
            if self._should_close():
                conn.close()

    def get(self, participant_id: str) -> ServiceResult[Participant]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM participants WHERE participant_id = ? AND provisioned = 1",
                (participant_id,),
            ).fetchone()
        except sqlite3.Error as e:
            return ServiceResult.failure(f"Error reading participant '{participant_id}': {e}")
        finally:
            if self._should_close():
                conn.close()

        if row is None:
            return ServiceResult.failure(
                f"No participant found with ID '{participant_id}'", "not_found"
            )
        return ServiceResult.success(self._map_row(row))

    def create(self, manifest: ParticipantManifest) -> ServiceResult[GeneratedCredential]:
        if not manifest.participant_id:
            return ServiceResult.failure("Participant ID must not be empty", "bad_request")

        try:
            key_pair = self.key_generator.generate(manifest.key.key_generator_params)
        except UnsupportedKeyError as e:
            return ServiceResult.failure(str(e), "bad_request")

        participant_id = manifest.participant_id
        token_alias = api_token_alias_for(participant_id)

        inserted = self._insert(manifest, key_pair, token_alias)
        if inserted.failed and inserted.reason == "conflict" and self._reclaim_stale(participant_id):
            inserted = self._insert(manifest, key_pair, token_alias)
        if inserted.failed:
            return ServiceResult.failure(
                inserted.failure_detail or "", inserted.reason or "unexpected"
            )

        api_key = format_api_key(participant_id, secrets.token_urlsafe(48))
        written: list[str] = []
        failure: str | None = None
        try:
            for alias, value in (
                (manifest.key.private_key_alias, key_pair.private_key_pem),
                (token_alias, api_key),
            ):
                stored = self.vault.store_secret(alias, value)
                if stored.failed:
                    failure = (
                        f"Error storing secret '{alias}' for participant '{participant_id}': "
                        f"{stored.failure_detail}"
                    )
                    break
                written.append(alias)
            else:
                self._mark_provisioned(participant_id)
        except BaseException:
            self._discard(participant_id, written)
            raise

        if failure is not None:
            self._discard(participant_id, written)
            return ServiceResult.failure(failure)

        logger.debug(f"Created participant '{participant_id}' with key '{manifest.key.key_id}'")
        return ServiceResult.success(
            GeneratedCredential(
                participant_id=participant_id,
                api_key=api_key,
                api_token_alias=token_alias,
            )
        )

    def _insert(
        self, manifest: ParticipantManifest, key_pair: KeyPair, token_alias: str
    ) -> ServiceResult[None]:
        participant_id = manifest.participant_id
        now = datetime.now(UTC).isoformat()

        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO participants "
                "(participant_id, did, active, roles, api_token_alias, created_at, provisioned) "
                "VALUES (?, ?, ?, ?, ?, ?, 0)",
                (
                    participant_id,
                    manifest.did,
                    1 if manifest.active else 0,
                    json.dumps(list(manifest.roles)),
                    token_alias,
                    now,
                ),
            )
            conn.execute(
                "INSERT INTO key_pairs "
                "(key_id, participant_id, algorithm, curve, public_key, "
                "private_key_alias, active, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    manifest.key.key_id,
                    participant_id,
                    key_pair.algorithm,
                    key_pair.curve,
                    key_pair.public_key,
                    manifest.key.private_key_alias,
                    1 if manifest.key.active else 0,
                    now,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            return ServiceResult.failure(
                f"A participant with ID '{participant_id}' already exists: {e}", "conflict"
            )
        except sqlite3.Error as e:
            conn.rollback()
            return ServiceResult.failure(f"Error persisting participant '{participant_id}': {e}")
        finally:
            if self._should_close():
                conn.close()
        return ServiceResult.success()

    def _reclaim_stale(self, participant_id: str) -> bool:
        """Delete an unprovisioned row older than stale_after. True if one was removed."""
        cutoff = (datetime.now(UTC) - self.stale_after).isoformat()
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM key_pairs WHERE participant_id IN ("
                "SELECT participant_id FROM participants "
                "WHERE participant_id = ? AND provisioned = 0 AND created_at <= ?)",
                (participant_id, cutoff),
            )
            cursor = conn.execute(
                "DELETE FROM participants "
                "WHERE participant_id = ? AND provisioned = 0 AND created_at <= ?",
                (participant_id, cutoff),
            )
            conn.commit()
            reclaimed = cursor.rowcount > 0
        finally:
            if self._should_close():
                conn.close()

        if reclaimed:
            logger.warning(
                f"Reclaimed incomplete participant '{participant_id}' left by an earlier create"
            )
        return reclaimed

    def _mark_provisioned(self, participant_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE participants SET provisioned = 1 WHERE participant_id = ?",
                (participant_id,),
            )
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def _discard(self, participant_id: str, aliases: list[str]) -> None:
        """Undo a create whose secrets could not all be stored."""
        for alias in aliases:
            deleted = self.vault.delete_secret(alias)
            if deleted.failed:
                logger.warning(f"Could not delete secret '{alias}': {deleted.failure_detail}")

        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM key_pairs WHERE participant_id = ?", (participant_id,))
            conn.execute("DELETE FROM participants WHERE participant_id = ?", (participant_id,))
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Participant:
        created_at = parse_dt(row["created_at"])
        return Participant(
            participant_id=row["participant_id"],
            did=row["did"],
            active=bool(row["active"]),
            roles=json.loads(row["roles"] or "[]"),
            api_token_alias=row["api_token_alias"],
            created_at=created_at or datetime.now(UTC),
        )
