"""
Migration component unit tests.

Uses an in-memory store so ordering, convergence and partial failure can be
checked without a database.
"""

from __future__ import annotations

import pytest

from identity_seed.components.migrations import (
    AppliedMigration,
    DatasourceCredentials,
    MigrateInput,
    MigrationError,
    MigrationScript,
    run,
)

# --- Mock collaborators ---


def script(version: int, sql: str = "SELECT 1;", checksum: str | None = None) -> MigrationScript:
    return MigrationScript(
        version=version,
        description=f"step {version}",
        filename=f"V{version}__step_{version}.sql",
        sql=sql,
        checksum=checksum or f"sum-{version}",
    )


class MockStore:
    def __init__(self, history: list[AppliedMigration] | None = None, fail_on: int | None = None):
        self.history = list(history or [])
        self.fail_on = fail_on
        self.apply_calls: list[int] = []
        self.closed = False
        self.history_ensured = False

    def has_history(self) -> bool:
        return self.history_ensured

    def ensure_history(self) -> None:
        self.history_ensured = True

    def current_version(self) -> int | None:
        return max((h.version for h in self.history), default=None)

    def applied(self) -> list[AppliedMigration]:
        return list(self.history)

    def apply(self, migration: MigrationScript) -> bool:
        self.apply_calls.append(migration.version)
        if migration.version == self.fail_on:
            raise RuntimeError("syntax error near BOOM")
        self.history.append(
            AppliedMigration(
                version=migration.version,
                description=migration.description,
                checksum=migration.checksum,
            )
        )
        return True

    def close(self) -> None:
        self.closed = True


class MockConnector:
    def __init__(self, store: MockStore) -> None:
        self.store = store
        self.credentials: list[DatasourceCredentials] = []

    def connect(self, credentials: DatasourceCredentials) -> MockStore:
        self.credentials.append(credentials)
        return self.store


class MockScripts:
    def __init__(self, scripts: list[MigrationScript]) -> None:
        self._scripts = scripts

    def list_scripts(self, subsystem: str) -> list[MigrationScript]:
        return list(self._scripts)


class MockVault:
    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        self.secrets = secrets or {}

    def resolve_secret(self, alias: str) -> str | None:
        return self.secrets.get(alias)


@pytest.fixture
def inp() -> MigrateInput:
    return MigrateInput(subsystem="stsclient", url="sqlite:///ignored.db")


def applied(version: int) -> AppliedMigration:
    return AppliedMigration(version=version, description=f"step {version}", checksum=f"sum-{version}")


# --- Tests ---


def test_applies_pending_scripts_in_ascending_order(inp) -> None:
    store = MockStore(history=[applied(1), applied(2)])
    scripts = MockScripts([script(5), script(3), script(1), script(4), script(2)])

    result = run(inp, MockVault(), MockConnector(store), scripts)

    assert store.apply_calls == [3, 4, 5]
    assert result.previous_version == 2
    assert result.current_version == 5
    assert result.latest_version == 5
    assert result.applied == (3, 4, 5)
    assert result.up_to_date is True
    assert store.closed is True


def test_second_run_applies_nothing(inp) -> None:
    store = MockStore()
    scripts = MockScripts([script(1), script(2)])
    connector = MockConnector(store)

    run(inp, MockVault(), connector, scripts)
    store.apply_calls.clear()
    result = run(inp, MockVault(), connector, scripts)

    assert store.apply_calls == []
    assert result.applied == ()
    assert result.current_version == 2


def test_failure_keeps_earlier_scripts_and_stops(inp) -> None:
    store = MockStore(history=[applied(1)], fail_on=4)
    scripts = MockScripts([script(v) for v in range(1, 7)])

    with pytest.raises(MigrationError) as exc_info:
        run(inp, MockVault(), MockConnector(store), scripts)

    assert store.apply_calls == [2, 3, 4]
    assert store.current_version() == 3
    assert exc_info.value.version == 4
    assert exc_info.value.subsystem == "stsclient"
    assert store.closed is True


def test_password_resolved_from_vault(inp) -> None:
    connector = MockConnector(MockStore())
    vault = MockVault({"stsclient-datasource-password": "pg-secret"})

    run(inp, vault, connector, MockScripts([]))

    credentials = connector.credentials[0]
    assert credentials.subsystem == "stsclient"
    assert credentials.password == "pg-secret"
    assert "pg-secret" not in repr(credentials)


def test_missing_password_is_allowed(inp) -> None:
    connector = MockConnector(MockStore())

    run(inp, MockVault(), connector, MockScripts([script(1)]))

    assert connector.credentials[0].password is None


def test_disabled_subsystem_is_skipped() -> None:
    store = MockStore()
    connector = MockConnector(store)
    inp = MigrateInput(subsystem="stsclient", url="x.db", enabled=False)

    result = run(inp, MockVault(), connector, MockScripts([script(1)]))

    assert result.skipped_reason is not None
    assert connector.credentials == []
    assert store.apply_calls == []


def test_duplicate_versions_rejected(inp) -> None:
    store = MockStore()

    with pytest.raises(MigrationError, match="more than one migration with version 2"):
        run(inp, MockVault(), MockConnector(store), MockScripts([script(1), script(2), script(2)]))

    assert store.apply_calls == []


def test_checksum_drift_rejected(inp) -> None:
    store = MockStore(history=[applied(1)])

    with pytest.raises(MigrationError, match="Checksum mismatch"):
        run(inp, MockVault(), MockConnector(store), MockScripts([script(1, checksum="changed")]))

    assert store.apply_calls == []
    assert store.closed is True


def test_applied_version_missing_locally_rejected(inp) -> None:
    store = MockStore(history=[applied(1), applied(2)])

    with pytest.raises(MigrationError, match="not found locally"):
        run(inp, MockVault(), MockConnector(store), MockScripts([script(1)]))


def test_concurrently_applied_version_is_not_counted(inp) -> None:
    class RacingStore(MockStore):
        def apply(self, migration: MigrationScript) -> bool:
            self.apply_calls.append(migration.version)
            return False  # another instance got there first

    store = RacingStore()
    result = run(inp, MockVault(), MockConnector(store), MockScripts([script(1), script(2)]))

    assert store.apply_calls == [1, 2]
    assert result.applied == ()
    assert result.current_version == 2
