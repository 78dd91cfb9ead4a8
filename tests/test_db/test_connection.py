from __future__ import annotations

import logging
from pathlib import Path

import pytest

from litesql import Connection
from litesql.config import ConnectionConfig
from litesql.connection import create_sqlite_connection, open_connection, resolve_db_path
from litesql.errors import BindError, ExecutionError, ProgrammingError


def test_readonly_returns_false_on_read_write_connections(db: Connection) -> None:
    assert db.readonly is False


def test_readonly_returns_true_on_read_only_connections() -> None:
    with Connection(readonly=True) as conn:
        assert conn.readonly is True
        result = conn.run("CREATE TABLE t (x)")
        assert result.failed


def test_readonly_file_database_rejects_writes(tmp_path: Path) -> None:
    db_path = tmp_path / "app.db"
    with Connection(db_path) as writer:
        assert writer.execute("CREATE TABLE t (x); INSERT INTO t VALUES (1)").ok

    with Connection(db_path, readonly=True) as reader:
        assert reader.scalar("SELECT x FROM t") == 1
        result = reader.run("INSERT INTO t VALUES (2)")
        assert result.failed
        assert "readonly" in result.reason.lower()


def test_opening_missing_readonly_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ExecutionError, match="cannot open database"):
        Connection(tmp_path / "missing.db", readonly=True)


def test_last_insert_id_returns_none_on_new_connections(db: Connection) -> None:
    assert db.last_insert_id is None


def test_last_insert_id_returns_last_id_after_inserts(db: Connection, insert_user) -> None:
    insert_user("alice")
    assert db.last_insert_id == 1
    insert_user("betsy")
    assert db.last_insert_id == 2


def test_last_insert_id_treats_rowid_zero_as_absent(db: Connection) -> None:
    assert db.run("INSERT INTO users (id, email) VALUES (0, 'zero@example.com')").ok
    assert db.last_change_count == 1
    assert db.last_insert_id is None

    assert db.run("INSERT INTO users (id, email) VALUES (-1, 'minus@example.com')").ok
    assert db.last_insert_id == -1


def test_last_change_count_returns_zero_on_new_connections(db: Connection) -> None:
    assert db.last_change_count == 0


def test_last_change_count_returns_number_of_changes(db: Connection, insert_user) -> None:
    insert_user("alice")
    assert db.last_change_count == 1
    insert_user("betsy")
    assert db.last_change_count == 1

    assert db.run("UPDATE users SET age = 30").ok
    assert db.last_change_count == 2

    # a SELECT leaves the engine's per-statement count untouched
    assert db.scalar("SELECT count(*) FROM users") == 2
    assert db.last_change_count == 2


def test_total_change_count_returns_total_number_of_changes(db: Connection, insert_user) -> None:
    assert db.total_change_count == 0
    insert_user("alice")
    assert db.total_change_count == 1
    insert_user("betsy")
    assert db.total_change_count == 2
    db.run("DELETE FROM users")
    assert db.total_change_count == 4


def test_prepare_prepares_and_returns_statements(db: Connection) -> None:
    statements = [
        db.prepare("SELECT * FROM users WHERE admin = 0"),
        db.prepare("SELECT * FROM users WHERE admin = ?", 0),
        db.prepare("SELECT * FROM users WHERE admin = ?", [0]),
        db.prepare("SELECT * FROM users WHERE admin = $admin", {"$admin": 0}),
    ]
    assert all(stmt.result.ok for stmt in statements)
    assert all(stmt.connection is db for stmt in statements)


def test_run_prepares_runs_and_returns_results(db: Connection, count_sql) -> None:
    results = [
        db.run("SELECT * FROM users WHERE admin = 0"),
        db.run("SELECT * FROM users WHERE admin = ?", 0),
        db.run("SELECT * FROM users WHERE admin = ?", [0]),
        db.run("SELECT * FROM users WHERE admin = $admin", {"$admin": 0}),
    ]
    assert all(result.ok for result in results)
    assert count_sql("SELECT * FROM users WHERE admin = 0") == 4


def test_scalar_prepares_runs_and_returns_scalar_values(db: Connection, count_sql) -> None:
    assert db.scalar("SELECT count(*) FROM users WHERE admin = 0") == 0
    assert db.scalar("SELECT count(*) FROM users WHERE admin = ?", 0) == 0
    assert db.scalar("SELECT count(*) FROM users WHERE admin = ?", [0]) == 0
    assert db.scalar("SELECT count(*) FROM users WHERE admin = $admin", {"$admin": 0}) == 0
    assert count_sql("SELECT count(*) FROM users WHERE admin = 0") == 4


def test_user_version_gets_and_sets_user_version(db: Connection, count_sql) -> None:
    assert db.user_version == 0
    db.user_version = 1
    assert db.user_version == 1
    assert count_sql("PRAGMA user_version = 1") == 1


def test_user_version_read_and_write_are_traced(db: Connection, trace) -> None:
    db.user_version = 4
    assert db.user_version == 4
    assert trace == ["PRAGMA user_version = 4", "PRAGMA user_version"]


def test_user_version_rejects_non_integers(db: Connection) -> None:
    with pytest.raises(BindError):
        db.user_version = "2"


def test_user_version_write_failure_raises() -> None:
    with Connection(readonly=True) as conn:
        with pytest.raises(ExecutionError):
            conn.user_version = 3


def test_execute_runs_scripts_statement_by_statement(db: Connection, trace) -> None:
    result = db.execute(
        """
        INSERT INTO users (email) VALUES ('alice@example.com');
        INSERT INTO users (email) VALUES ('betsy@example.com');
        """
    )
    assert result.ok
    assert len(trace) == 2
    assert db.scalar("SELECT count(*) FROM users") == 2


def test_execute_stops_at_first_failure(db: Connection) -> None:
    result = db.execute(
        "INSERT INTO users (email) VALUES ('a@example.com');"
        "INSERT INTO users (email) VALUES ('a@example.com');"
        "INSERT INTO users (email) VALUES ('b@example.com');"
    )
    assert result.failed
    assert "unique" in result.reason.lower()
    assert db.scalar("SELECT count(*) FROM users") == 1


def test_closed_connection_raises_programming_error() -> None:
    conn = Connection()
    conn.close()
    assert conn.closed
    conn.close()  # idempotent
    for operation in (
        lambda: conn.prepare("SELECT 1"),
        lambda: conn.run("SELECT 1"),
        lambda: conn.last_insert_id,
        lambda: conn.user_version,
        lambda: conn.transaction(lambda txn: None),
    ):
        with pytest.raises(ProgrammingError):
            operation()


def test_from_config_applies_pragmas(tmp_path: Path) -> None:
    config = ConnectionConfig(path=str(tmp_path / "wal.db"), journal_mode="wal", busy_timeout=1234)
    with open_connection(config) as conn:
        assert conn.scalar("PRAGMA journal_mode") == "wal"
        assert conn.scalar("PRAGMA busy_timeout") == 1234
        assert conn.scalar("PRAGMA foreign_keys") == 1


def test_from_config_rejects_invalid_settings() -> None:
    with pytest.raises(ValueError):
        Connection.from_config(ConnectionConfig(journal_mode="sideways"))


def test_trace_sql_logs_statements(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="litesql")
    with Connection.from_config(ConnectionConfig(trace_sql=True)) as conn:
        conn.run("SELECT ?", 5)
    assert "SQL: SELECT 5" in caplog.text


def test_create_sqlite_connection_sets_pragmas_and_row_factory() -> None:
    raw = create_sqlite_connection(":memory:", foreign_keys=False, busy_timeout=10)
    try:
        assert raw.execute("PRAGMA foreign_keys").fetchone()[0] == 0
        assert raw.execute("PRAGMA busy_timeout").fetchone()[0] == 10
        row = raw.execute("SELECT 1 AS value").fetchone()
        assert row["value"] == 1
        assert raw.isolation_level is None
    finally:
        raw.close()


def test_resolve_db_path() -> None:
    assert resolve_db_path(None) == ":memory:"
    assert resolve_db_path(":memory:") == ":memory:"
    assert resolve_db_path("~/x.db") == str(Path("~/x.db").expanduser())
