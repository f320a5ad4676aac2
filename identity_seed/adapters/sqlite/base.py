"""
SQLite adapter helpers.

Shared connection handling for the SQLite-backed collaborators.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

SQLITE_URL_PREFIX = "sqlite:///"


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def path_from_url(url: str) -> str:
    """Accept either 'sqlite:///path' or a bare file path."""
    if url.startswith(SQLITE_URL_PREFIX):
        return url[len(SQLITE_URL_PREFIX):]
    return url


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = path_from_url(db_path)
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None
