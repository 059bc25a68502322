"""Prepared-statement executor over a SQLAlchemy engine.

``Database`` runs the ``(sql, values)`` pairs produced by
:class:`~minerql.query_builder.QueryBuilder` with positional binding.  It
holds a single connection checked out lazily from the engine's pool and is
not thread-safe; use one instance per thread.

Outside :meth:`Database.start` / :meth:`Database.transaction` every
statement is committed as soon as it has run.  A statement that fails with
a deadlock or serialization error outside an explicit transaction is re-run
up to ``config.deadlock_retries`` times.

Example:
    >>> from minerql.db import Database
    >>> with Database.from_url("mysql+pymysql://app@localhost/shop") as db:
    ...     rows = db.select("users", conditions={"status": "active"}).rows
"""
from __future__ import annotations

import re
import time
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from itertools import count, repeat
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, CursorResult, Engine, RootTransaction
from sqlalchemy.exc import DBAPIError

from minerql.db.config import DatabaseConfig
from minerql.errors import DatabaseError
from minerql.logging import get_logger
from minerql.query_builder import QueryBuilder
from minerql.schema.expressions import Operator, OrderDirection

logger = get_logger(__name__)

#: MySQL ER_LOCK_DEADLOCK / ER_LOCK_WAIT_TIMEOUT and the SQLSTATE for
#: serialization failures.
DEADLOCK_CODES = frozenset({1213, 1205, "40001"})

# A quoted string literal, or a positional placeholder outside of one.
_PLACEHOLDER = re.compile(r"('(?:[^'\\]|\\.|'')*')|\?")


@dataclass
class QueryResult:
    """Buffered outcome of one statement.

    Attributes:
        rows: Result rows as ``{column: value}`` dicts; empty for statements
            that return no rows.
        rowcount: Rows affected, as reported by the driver.
        last_insert_id: Auto-increment id generated by the statement, if any.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = -1
    last_insert_id: Any = None

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """First column of the first row, or ``None``."""
        row = self.first()
        return next(iter(row.values())) if row else None


def _execute(
    conn: Connection, sql: str, params: Sequence[Any] | Mapping[str, Any]
) -> CursorResult:
    return conn.exec_driver_sql(sql, params)


def _error_code(exc: DBAPIError) -> Any:
    """Pull a vendor error code or SQLSTATE out of a wrapped driver error."""
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return code
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return getattr(orig, "sqlite_errorcode", None)


def bind_parameters(
    sql: str, values: Sequence[Any], paramstyle: str
) -> tuple[str, Sequence[Any] | dict[str, Any]]:
    """Rewrite ``?`` placeholders for a DB-API ``paramstyle``.

    ``?`` inside quoted string literals is left alone.

    Args:
        sql: Statement text using ``?`` placeholders.
        values: Positional values.
        paramstyle: The driver's DB-API paramstyle.

    Returns:
        ``(sql, params)`` ready for ``exec_driver_sql``.
    """
    values = tuple(values)
    if paramstyle == "qmark":
        return sql, values

    if paramstyle in ("format", "pyformat"):
        sql = sql.replace("%", "%%")
        markers: Iterator[str] = repeat("%s")
    elif paramstyle == "numeric":
        markers = (f":{i}" for i in count(1))
    elif paramstyle == "named":
        markers = (f":p{i}" for i in count(1))
    else:
        raise DatabaseError(f"Unsupported paramstyle: {paramstyle!r}", sql=sql, values=values)

    text = _PLACEHOLDER.sub(lambda m: m.group(1) or next(markers), sql)
    if paramstyle == "named":
        return text, {f"p{i}": value for i, value in enumerate(values, start=1)}
    return text, values


class Database:
    """Runs parameterized statements against a SQLAlchemy engine.

    Args:
        engine: Engine to check a connection out of.
        config: Executor settings; defaults to :class:`DatabaseConfig()`.
    """

    def __init__(self, engine: Engine, config: DatabaseConfig | None = None) -> None:
        self._engine = engine
        self.config = config or DatabaseConfig()
        self._connection: Connection | None = None
        self._transaction: RootTransaction | None = None
        self._query_string = ""
        self._query_bind: list[Any] = []
        self._last_insert_id: Any = None

    @classmethod
    def from_url(cls, url: str, **config: Any) -> Database:
        """Create an engine for ``url`` and wrap it.

        Keyword arguments are :class:`DatabaseConfig` fields.
        """
        cfg = DatabaseConfig(**config)
        engine = create_engine(url, echo=cfg.echo)
        logger.info("engine_created", url=engine.url.render_as_string(hide_password=True))
        return cls(engine, cfg)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def connection(self) -> Connection:
        """The underlying connection, opened on first use."""
        if self._connection is None:
            conn = self._engine.connect()
            if self.config.charset:
                conn.exec_driver_sql(f"SET NAMES {self.config.charset}")
                conn.commit()
            self._connection = conn
        return self._connection

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def query(self, sql: str, values: Sequence[Any] = ()) -> QueryResult:
        """Execute ``sql`` with positional ``values`` bound to its ``?`` markers.

        Raises:
            DatabaseError: If the driver rejects the statement.  The original
                driver error is chained as ``__cause__``.
        """
        self._query_string = sql
        self._query_bind = list(values)
        return self._query(sql, list(values))

    def _query(self, sql: str, values: list[Any]) -> QueryResult:
        attempt = 0
        while True:
            try:
                return self._run(sql, values)
            except DBAPIError as exc:
                code = _error_code(exc)
                self._rollback_implicit()
                if (
                    code in DEADLOCK_CODES
                    and self._transaction is None
                    and attempt < self.config.deadlock_retries
                ):
                    attempt += 1
                    logger.warning("deadlock_retry", attempt=attempt, code=code)
                    time.sleep(attempt * self.config.deadlock_backoff)
                    continue
                logger.error(
                    "query_failed", code=code, error=str(exc.orig), placeholders=len(values)
                )
                raise DatabaseError(str(exc.orig), sql=sql, values=values, code=code) from exc
            except Exception:
                self._rollback_implicit()
                raise

    def _rollback_implicit(self) -> None:
        """Roll back the transaction SQLAlchemy began on its own, if any."""
        if self._transaction is None and self._connection is not None:
            self._connection.rollback()

    def _run(self, sql: str, values: list[Any]) -> QueryResult:
        conn = self.connection
        statement, params = bind_parameters(sql, values, self._engine.dialect.paramstyle)
        result = _execute(conn, statement, params)
        rowcount = result.rowcount
        rows = [dict(row) for row in result.mappings().all()] if result.returns_rows else []
        last_id = result.lastrowid if not result.returns_rows else None
        if last_id:
            self._last_insert_id = last_id
        if self._transaction is None:
            conn.commit()
        logger.debug(
            "query_executed", sql=sql, placeholders=len(values), rowcount=rowcount
        )
        return QueryResult(rows=rows, rowcount=rowcount, last_insert_id=last_id or None)

    def execute(self, builder: QueryBuilder) -> QueryResult:
        """Compile ``builder`` and run the result.

        Raises:
            ValueError: If the builder has no statement to run.
        """
        compiled = builder.compile()
        if not compiled.sql:
            raise ValueError("QueryBuilder has no statement to execute.")
        return self.query(compiled.sql, compiled.params)

    # ------------------------------------------------------------------
    # Convenience statements
    # ------------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        conditions: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> QueryResult:
        """``SELECT columns FROM table WHERE c1 = ? AND ...``.

        A ``None`` condition value matches ``IS NULL``; a list, tuple or set
        matches ``IN``.
        """
        qb = QueryBuilder()
        for column in columns or ["*"]:
            qb.select(column)
        qb.from_(table)
        _apply_conditions(qb, conditions or {})
        if order_by:
            qb.order_by(order_by, OrderDirection.DESC if descending else OrderDirection.ASC)
        if limit is not None:
            qb.limit(limit, offset)
        return self.execute(qb)

    def insert(self, table: str, values: Mapping[str, Any]) -> QueryResult:
        """``INSERT table SET col = ?, ...``."""
        if not values:
            raise ValueError("values must be a non-empty mapping of column -> value.")
        return self.execute(QueryBuilder().insert(table).set(values))

    def update(
        self, table: str, changes: Mapping[str, Any], conditions: Mapping[str, Any]
    ) -> QueryResult:
        if not changes:
            raise ValueError("changes must be a non-empty mapping of column -> value.")
        if not conditions:
            raise ValueError("conditions must be a non-empty mapping of column -> value.")
        qb = QueryBuilder().update(table).set(changes)
        _apply_conditions(qb, conditions)
        return self.execute(qb)

    def delete(self, table: str, conditions: Mapping[str, Any]) -> QueryResult:
        """``DELETE FROM table WHERE ...``; refuses to run without conditions."""
        if not conditions:
            raise ValueError("conditions must be a non-empty mapping of column -> value.")
        qb = QueryBuilder().delete().from_(table)
        _apply_conditions(qb, conditions)
        return self.execute(qb)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin an explicit transaction.

        Raises:
            DatabaseError: If a transaction is already active.
        """
        if self.in_transaction():
            raise DatabaseError("A transaction is already active.")
        self._transaction = self.connection.begin()

    def commit(self) -> None:
        if not self.in_transaction():
            raise DatabaseError("There is no active transaction to commit.")
        transaction, self._transaction = self._transaction, None
        transaction.commit()

    def rollback(self) -> None:
        if not self.in_transaction():
            raise DatabaseError("There is no active transaction to roll back.")
        transaction, self._transaction = self._transaction, None
        transaction.rollback()

    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the block in a transaction; commit on success, roll back on error."""
        self.start()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    # ------------------------------------------------------------------
    # Introspection and session settings
    # ------------------------------------------------------------------

    def last_insert_id(self) -> Any:
        """Id generated by the most recent INSERT that produced one."""
        return self._last_insert_id

    def total_rows(self) -> int:
        """Rows the previous ``SQL_CALC_FOUND_ROWS`` SELECT would have returned (MySQL)."""
        return int(self._query("SELECT FOUND_ROWS()", []).scalar() or 0)

    def set_foreign_key_check(self, enabled: bool = True) -> Database:
        self._query(f"SET foreign_key_checks = {1 if enabled else 0}", [])
        return self

    def get_query_string(self) -> str:
        return self._query_string

    def get_query_bind(self) -> list[Any]:
        return list(self._query_bind)

    def close(self) -> None:
        """Return the connection to the pool, rolling back an open transaction."""
        if self._connection is None:
            return
        if self.in_transaction():
            self.rollback()
        self._connection.close()
        self._connection = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _apply_conditions(qb: QueryBuilder, conditions: Mapping[str, Any]) -> None:
    for column, value in conditions.items():
        if value is None:
            qb.where(column, None, Operator.IS)
        elif isinstance(value, (list, tuple, set, frozenset)):
            qb.where_in(column, list(value))
        else:
            qb.where(column, value)
