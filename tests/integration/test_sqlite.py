"""Integration tests: build → execute against an in-memory SQLite database.

SQLite accepts backtick-quoted identifiers and ``?`` placeholders, so every
statement shape it shares with MySQL (SELECT, UPDATE, single-table DELETE)
runs for real.  MySQL-only syntax (``INSERT … SET``, ``FOUND_ROWS()``,
``SET foreign_key_checks``) is checked at the SQL level instead.
"""
from __future__ import annotations

import logging

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, OperationalError

from minerql import DatabaseError, QueryBuilder
from minerql.db import Database, DatabaseConfig, QueryResult
from minerql.db import database as database_module

USERS = [
    ("alice", "active", 30),
    ("bob", "inactive", 25),
    ("carol", "active", 41),
    ("dave", None, 35),
]


class _DriverError(Exception):
    """Stands in for a DB-API error raised by a MySQL driver."""


class _SerializationFailure(Exception):
    sqlstate = "40001"


def _deadlock() -> OperationalError:
    return OperationalError(
        "UPDATE `users` SET `age` = ?", (1,), _DriverError(1213, "Deadlock found")
    )


@pytest.fixture()
def db():
    database = Database(create_engine("sqlite://"), DatabaseConfig(deadlock_backoff=0.5))
    database.query(
        "CREATE TABLE users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL, status TEXT, age INTEGER)"
    )
    for name, status, age in USERS:
        database.query(
            "INSERT INTO users (name, status, age) VALUES (?, ?, ?)", [name, status, age]
        )
    yield database
    database.close()


@pytest.fixture()
def sleeps(monkeypatch) -> list:
    calls: list = []
    monkeypatch.setattr(database_module.time, "sleep", calls.append)
    return calls


def _count(db: Database) -> int:
    return db.query("SELECT COUNT(*) AS n FROM users").scalar()


def _names(result: QueryResult) -> list[str]:
    return [row["name"] for row in result.rows]


# ---------------------------------------------------------------------------
# SELECT
# ---------------------------------------------------------------------------


def test_select_all_rows_as_dicts(db):
    result = db.select("users")
    assert len(result.rows) == 4
    assert set(result.first()) == {"id", "name", "status", "age"}


def test_select_with_conditions_and_order(db):
    result = db.select("users", ["name"], {"status": "active"}, order_by="name")
    assert result.rows == [{"name": "alice"}, {"name": "carol"}]


def test_none_condition_matches_null(db):
    assert _names(db.select("users", ["name"], {"status": None})) == ["dave"]


def test_sequence_condition_matches_in(db):
    result = db.select("users", ["name"], {"name": ["alice", "bob", "zed"]}, order_by="name")
    assert _names(result) == ["alice", "bob"]


def test_select_descending_with_limit_and_offset(db):
    result = db.select(
        "users", ["name"], order_by="age", descending=True, limit=2, offset=1
    )
    assert _names(result) == ["dave", "alice"]
    assert db.get_query_string() == (
        "SELECT `name` FROM `users` ORDER BY `age` DESC LIMIT 2 OFFSET 1"
    )


def test_execute_builder_with_brackets(db):
    qb = (
        QueryBuilder()
        .select("name")
        .from_("users")
        .where("status", "active")
        .open_where()
        .where("age", 40, ">")
        .or_where("name", "alice")
        .close_where()
        .order_by("name")
    )
    assert _names(db.execute(qb)) == ["alice", "carol"]
    assert db.get_query_bind() == ["active", 40, "alice"]


def test_execute_builder_with_join(db):
    db.query("CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total INTEGER)")
    db.query("INSERT INTO orders (user_id, total) VALUES (1, 50), (1, 70), (3, 20)")
    qb = (
        QueryBuilder()
        .select("users.name")
        .select("orders.total")
        .from_("users")
        .join("orders", "users.id = orders.user_id")
        .where("orders.total", 30, ">")
        .order_by("orders.total")
    )
    assert db.execute(qb).rows == [
        {"name": "alice", "total": 50},
        {"name": "alice", "total": 70},
    ]


def test_execute_empty_builder_raises(db):
    with pytest.raises(ValueError):
        db.execute(QueryBuilder())


# ---------------------------------------------------------------------------
# UPDATE / DELETE / INSERT
# ---------------------------------------------------------------------------


def test_update(db):
    result = db.update("users", {"status": "archived", "age": 26}, {"name": "bob"})
    assert result.rowcount == 1
    assert db.select("users", ["status", "age"], {"name": "bob"}).rows == [
        {"status": "archived", "age": 26}
    ]


def test_delete(db):
    result = db.delete("users", {"status": "inactive"})
    assert result.rowcount == 1
    assert db.get_query_string() == "DELETE FROM `users` WHERE `status` = ?"
    assert _count(db) == 3


@pytest.mark.parametrize(
    "call",
    [
        lambda db: db.insert("users", {}),
        lambda db: db.update("users", {}, {"id": 1}),
        lambda db: db.update("users", {"age": 1}, {}),
        lambda db: db.delete("users", {}),
    ],
)
def test_empty_mappings_are_rejected(db, call):
    with pytest.raises(ValueError):
        call(db)
    assert _count(db) == 4


def test_insert_builds_insert_set(db, monkeypatch):
    seen = []
    monkeypatch.setattr(db, "query", lambda sql, values=(): seen.append((sql, values)))
    db.insert("users", {"name": "erin", "age": 22})
    assert seen == [("INSERT `users` SET `name` = ?, `age` = ?", ["erin", 22])]


def test_last_insert_id(db):
    result = db.query("INSERT INTO users (name) VALUES (?)", ["erin"])
    assert result.last_insert_id == 5
    assert db.last_insert_id() == 5
    db.update("users", {"age": 1}, {"name": "erin"})
    assert db.last_insert_id() == 5


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def test_transaction_commits(db):
    with db.transaction():
        assert db.in_transaction()
        db.query("INSERT INTO users (name) VALUES (?)", ["erin"])
    assert not db.in_transaction()
    assert _count(db) == 5


def test_transaction_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            db.query("INSERT INTO users (name) VALUES (?)", ["erin"])
            raise RuntimeError("abort")
    assert not db.in_transaction()
    assert _count(db) == 4


def test_manual_rollback(db):
    db.start()
    db.update("users", {"age": 99}, {"name": "alice"})
    db.rollback()
    assert db.select("users", ["age"], {"name": "alice"}).scalar() == 30


def test_transaction_state_errors(db):
    with pytest.raises(DatabaseError):
        db.commit()
    with pytest.raises(DatabaseError):
        db.rollback()
    db.start()
    with pytest.raises(DatabaseError):
        db.start()
    db.rollback()


# ---------------------------------------------------------------------------
# Failures and deadlock retry
# ---------------------------------------------------------------------------


def test_driver_errors_are_wrapped(db, caplog):
    caplog.set_level(logging.ERROR, logger="minerql")
    with pytest.raises(DatabaseError) as exc_info:
        db.query("SELECT * FROM missing WHERE id = ?", [1])
    err = exc_info.value
    assert err.sql == "SELECT * FROM missing WHERE id = ?"
    assert err.values == [1]
    assert isinstance(err.__cause__, DBAPIError)
    assert "missing" in str(err)
    assert "query_failed" in caplog.text

    # The connection is still usable afterwards.
    assert _count(db) == 4


def test_deadlock_is_retried(db, sleeps, monkeypatch, caplog):
    caplog.set_level(logging.WARNING, logger="minerql")
    real_execute = database_module._execute
    failures = [_deadlock(), _deadlock()]

    def flaky(conn, sql, params):
        if failures:
            raise failures.pop(0)
        return real_execute(conn, sql, params)

    monkeypatch.setattr(database_module, "_execute", flaky)
    result = db.update("users", {"age": 31}, {"name": "alice"})
    assert result.rowcount == 1
    assert sleeps == [0.5, 1.0]
    assert caplog.text.count("deadlock_retry") == 2


def test_deadlock_retries_are_bounded(db, sleeps, monkeypatch):
    calls = []

    def always_deadlocks(conn, sql, params):
        calls.append(sql)
        raise _deadlock()

    monkeypatch.setattr(database_module, "_execute", always_deadlocks)
    with pytest.raises(DatabaseError) as exc_info:
        db.update("users", {"age": 31}, {"name": "alice"})
    assert exc_info.value.code == 1213
    assert len(calls) == 4
    assert sleeps == [0.5, 1.0, 1.5]


def test_serialization_failure_sqlstate_is_retried(db, sleeps, monkeypatch):
    real_execute = database_module._execute
    failures = [OperationalError("SELECT 1", (), _SerializationFailure("could not serialize"))]

    def flaky(conn, sql, params):
        if failures:
            raise failures.pop(0)
        return real_execute(conn, sql, params)

    monkeypatch.setattr(database_module, "_execute", flaky)
    assert _count(db) == 4
    assert sleeps == [0.5]


def test_non_driver_failure_rolls_back_implicit_transaction(db, monkeypatch):
    real_execute = database_module._execute

    def execute_then_fail(conn, sql, params):
        real_execute(conn, sql, params)
        raise RuntimeError("lost result")

    monkeypatch.setattr(database_module, "_execute", execute_then_fail)
    with pytest.raises(RuntimeError):
        db.query("INSERT INTO users (name) VALUES (?)", ["erin"])
    monkeypatch.undo()

    assert not db.connection.in_transaction()
    assert _count(db) == 4
    with db.transaction():
        db.query("INSERT INTO users (name) VALUES (?)", ["erin"])
    assert _count(db) == 5


def test_no_retry_inside_transaction(db, sleeps, monkeypatch):
    calls = []

    def always_deadlocks(conn, sql, params):
        calls.append(sql)
        raise _deadlock()

    db.start()
    monkeypatch.setattr(database_module, "_execute", always_deadlocks)
    with pytest.raises(DatabaseError):
        db.update("users", {"age": 31}, {"name": "alice"})
    assert len(calls) == 1
    assert sleeps == []
    db.rollback()


# ---------------------------------------------------------------------------
# MySQL-only helpers, session and lifecycle
# ---------------------------------------------------------------------------


def test_total_rows_and_foreign_key_check(db, monkeypatch):
    db.select("users", ["name"], {"status": "active"})
    seen = []

    def fake_query(sql, values):
        seen.append(sql)
        return QueryResult(rows=[{"FOUND_ROWS()": 7}])

    monkeypatch.setattr(db, "_query", fake_query)
    assert db.total_rows() == 7
    assert db.set_foreign_key_check(False) is db
    db.set_foreign_key_check()
    assert seen == [
        "SELECT FOUND_ROWS()",
        "SET foreign_key_checks = 0",
        "SET foreign_key_checks = 1",
    ]
    assert db.get_query_string() == "SELECT `name` FROM `users` WHERE `status` = ?"
    assert db.get_query_bind() == ["active"]


def test_from_url_and_context_manager():
    with Database.from_url("sqlite://", deadlock_retries=1) as db:
        assert db.config.deadlock_retries == 1
        assert db.query("SELECT 1 AS one").rows == [{"one": 1}]
        assert db.connection is not None
    assert db._connection is None


def test_close_is_idempotent(db):
    db.select("users")
    db.close()
    db.close()
    assert db._connection is None
