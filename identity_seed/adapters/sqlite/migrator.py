import hashlib
import logging
import os
import re
import sqlite3
from datetime import UTC, datetime

from identity_seed.components.migrations.models import (
    AppliedMigration,
    DatasourceCredentials,
    MigrationError,
    MigrationScript,
)

from .base import parse_dt, path_from_url

logger = logging.getLogger(__name__)

SCRIPT_PATTERN = re.compile(r"^V(\d+)__(\w+)\.sql$")
SUBSYSTEM_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def split_statements(script: str) -> list[str]:
    """Split a SQL script into complete statements."""
    statements = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        buffer += line
        if sqlite3.complete_statement(buffer):
            statements.append(buffer.strip())
            buffer = ""

    leftover = [
        line for line in buffer.splitlines() if line.strip() and not line.strip().startswith("--")
    ]
    if leftover:
        raise ValueError(f"Incomplete SQL statement: {' '.join(leftover)[:80]}")
    return statements


class FileScriptSource:
    """Reads `<base_dir>/<subsystem>/V<version>__<description>.sql` files."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir

    def _read_up_script(self, path: str) -> str:
        with open(path) as f:
            content = f.read()

        # Only the part above '-- Down' is applied
        if "-- Down" in content:
            return content.split("-- Down")[0]
        return content

    def list_scripts(self, subsystem: str) -> list[MigrationScript]:
        directory = os.path.join(self.base_dir, subsystem)
        if not os.path.isdir(directory):
            logger.debug(f"No migrations directory for '{subsystem}' at {directory}")
            return []

        scripts = []
        for filename in sorted(os.listdir(directory)):
            match = SCRIPT_PATTERN.match(filename)
            if not match:
                if filename.startswith("V"):
                    logger.warning(
                        f"Ignoring '{filename}' in {directory}: migration scripts must be "
                        "named V<version>__<description>.sql (letters, digits, underscores)"
                    )
                continue
            sql = self._read_up_script(os.path.join(directory, filename))
            scripts.append(
                MigrationScript(
                    version=int(match.group(1)),
                    description=match.group(2).replace("_", " "),
                    filename=filename,
                    sql=sql,
                    checksum=hashlib.sha256(sql.encode()).hexdigest(),
                )
            )
        return scripts


class SQLiteMigrationStore:
    """Schema history for one subsystem, kept in `schema_history_<subsystem>`."""

    def __init__(self, db_path: str, subsystem: str):
        if not SUBSYSTEM_PATTERN.match(subsystem):
            raise MigrationError(subsystem, "Subsystem name must be a lowercase identifier")
        self.db_path = db_path
        self.subsystem = subsystem
        self.table = f"schema_history_{subsystem}"
        # autocommit mode; transactions are opened explicitly in apply()
        self._conn = sqlite3.connect(db_path, isolation_level=None)
        self._conn.execute("PRAGMA foreign_keys = ON;")

    def has_history(self) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (self.table,)
        ).fetchone()
        return row is not None

    def ensure_history(self) -> None:
        self._conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                version INTEGER PRIMARY KEY,
                description TEXT NOT NULL,
                script TEXT NOT NULL,
                checksum TEXT NOT NULL,
                applied_at TEXT NOT NULL
            );
        """)

    def current_version(self) -> int | None:
        row = self._conn.execute(f"SELECT MAX(version) FROM {self.table}").fetchone()
        return row[0] if row else None

    def applied(self) -> list[AppliedMigration]:
        cursor = self._conn.execute(
            f"SELECT version, description, checksum, applied_at FROM {self.table} ORDER BY version"
        )
        return [
            AppliedMigration(
                version=row[0],
                description=row[1],
                checksum=row[2],
                applied_at=parse_dt(row[3]),
            )
            for row in cursor.fetchall()
        ]

    def apply(self, script: MigrationScript) -> bool:
        conn = self._conn
        # IMMEDIATE takes the write lock before the version is re-read
        conn.execute("BEGIN IMMEDIATE")
        try:
            current = conn.execute(f"SELECT MAX(version) FROM {self.table}").fetchone()[0]
            if current is not None and current >= script.version:
                conn.execute("ROLLBACK")
                return False

            for statement in split_statements(script.sql):
                conn.execute(statement)
            conn.execute(
                f"INSERT INTO {self.table} "
                "(version, description, script, checksum, applied_at) VALUES (?, ?, ?, ?, ?)",
                (
                    script.version,
                    script.description,
                    script.filename,
                    script.checksum,
                    datetime.now(UTC).isoformat(),
                ),
            )
            conn.execute("COMMIT")
            return True
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def close(self) -> None:
        self._conn.close()


class SQLiteConnector:
    """Opens SQLite migration stores. SQLite has no login, so user and password are unused."""

    def connect(self, credentials: DatasourceCredentials) -> SQLiteMigrationStore:
        return SQLiteMigrationStore(path_from_url(credentials.url), credentials.subsystem)
