"""minerQL: fluent, parameterized MySQL statement building.

Build statements, bind values, never interpolate.

Public API
----------
``QueryBuilder``
    Fluent builder for SELECT / INSERT / REPLACE / UPDATE / DELETE that
    renders SQL with positional ``?`` placeholders plus the ordered list of
    values to bind.

``compile_statement``
    Compile a serialized :class:`StatementState` (JSON text or a dict), e.g.
    one saved with ``builder.state.model_dump_json()``.

``escape_identifier``
    Validate and backtick-quote a table or column name.

Re-exported types
-----------------
``StatementState``, ``CompiledStatement``, the operator / connector / join /
order enums, and all error classes.

Executor
--------
:mod:`minerql.db` runs compiled statements through SQLAlchemy.  It needs the
``sqlalchemy`` extra and is not imported here::

    from minerql.db import Database
"""

from __future__ import annotations

import json
from typing import Any

from minerql.compile.builder import CompiledStatement, StatementCompiler
from minerql.compile.identifier import escape_identifier
from minerql.compile.mysql import MySQLCompiler
from minerql.errors import (
    CompilationError,
    CriteriaError,
    DatabaseError,
    InvalidIdentifierError,
    MinerQLError,
    ParseError,
)
from minerql.logging import configure_logging, get_logger
from minerql.query_builder import QueryBuilder
from minerql.schema.criteria import Criteria, make_criterion
from minerql.schema.expressions import Connector, JoinType, Operator, OrderDirection
from minerql.schema.statement import StatementState, Verb

__all__ = [
    # Core
    "QueryBuilder",
    "compile_statement",
    "escape_identifier",
    # Compilation
    "CompiledStatement",
    "StatementCompiler",
    "MySQLCompiler",
    # Schema types
    "StatementState",
    "Criteria",
    "make_criterion",
    "Verb",
    "Operator",
    "Connector",
    "JoinType",
    "OrderDirection",
    # Logging
    "configure_logging",
    "get_logger",
    # Errors
    "MinerQLError",
    "InvalidIdentifierError",
    "CriteriaError",
    "CompilationError",
    "DatabaseError",
    "ParseError",
]


def compile_statement(
    state: str | dict[str, Any] | StatementState,
    strict: bool = False,
) -> CompiledStatement:
    """Parse and compile a serialized statement.

    Round-trips with ``QueryBuilder.state``::

        saved = builder.state.model_dump_json()
        compiled = minerql.compile_statement(saved)
        cursor.execute(compiled.sql, compiled.params)

    Bound ``datetime``, ``date``, ``time``, ``Decimal``, ``UUID`` and ``bytes``
    values are saved with a type tag and come back as the same type.

    Args:
        state: JSON text, a dict, or a :class:`StatementState`.
        strict: Enable strict-mode validation.

    Returns:
        ``CompiledStatement`` with ``sql``, ``params`` and ``verb``.

    Raises:
        ParseError: If ``state`` is not valid JSON or not a valid statement.
        InvalidIdentifierError: If a table or column name is rejected.
        CriteriaError: On a strict-mode violation.
    """
    if isinstance(state, StatementState):
        parsed = state
    else:
        raw = state
        if isinstance(state, str):
            try:
                raw = json.loads(state)
            except json.JSONDecodeError as exc:
                raise ParseError(f"Invalid JSON: {exc}", raw=state) from exc
        try:
            parsed = StatementState.model_validate(raw)
        except ValueError as exc:
            raise ParseError(f"Statement structure is invalid: {exc}", raw=str(state)) from exc

    return StatementCompiler(strict=strict).build(parsed)
