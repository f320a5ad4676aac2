"""
SQLite vault adapter.

Stores secrets by alias in the `secrets` table created by the `vault`
subsystem migrations. Values are never logged.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime

from identity_seed.domain.entities import ServiceResult

from .base import SQLiteRepoBase

logger = logging.getLogger(__name__)


class SQLiteVault(SQLiteRepoBase):
    """SQLite implementation of the vault ports."""

    def resolve_secret(self, alias: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM secrets WHERE alias = ?", (alias,)).fetchone()
        except sqlite3.Error as e:
            logger.debug(f"Error resolving secret '{alias}': {e}")
            return None
        finally:
            if self._should_close():
                conn.close()
        return row["value"] if row else None

    def store_secret(self, alias: str, value: str) -> ServiceResult[None]:
        if not alias:
            return ServiceResult.failure("Secret alias must not be empty", "bad_request")

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO secrets (alias, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(alias) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (alias, value, datetime.now(UTC).isoformat()),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            return ServiceResult.failure(f"Could not store secret '{alias}': {e}")
        finally:
            if self._should_close():
                conn.close()

        logger.debug(f"Stored secret '{alias}'")
        return ServiceResult.success()

    def delete_secret(self, alias: str) -> ServiceResult[None]:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM secrets WHERE alias = ?", (alias,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            return ServiceResult.failure(f"Could not delete secret '{alias}': {e}")
        finally:
            if self._should_close():
                conn.close()

        if cursor.rowcount == 0:
            return ServiceResult.failure(f"Secret '{alias}' not found", "not_found")
        return ServiceResult.success()
