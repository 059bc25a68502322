"""StatementState -> SQL compilation.

``StatementCompiler`` is the orchestrator.  It wires together the clause
builders for one compilation run, then composes their output in the order
the active verb requires.  Identifier quoting and placeholder text are
delegated to the injected :class:`~minerql.compile.mysql.MySQLCompiler`.

Sub-builder hierarchy
---------------------
StatementCompiler
  ├── OptionsClauseBuilder
  ├── SelectClauseBuilder
  ├── TargetClauseBuilder   (INSERT / REPLACE / UPDATE)
  ├── DeleteClauseBuilder
  ├── SetClauseBuilder
  ├── FromClauseBuilder
  ├── JoinClauseBuilder
  ├── CriteriaClauseBuilder (WHERE, HAVING)
  ├── GroupByClauseBuilder
  ├── OrderByClauseBuilder
  └── LimitClauseBuilder

Placeholder ordering
--------------------
A single :class:`~minerql.compile.criteria.PlaceholderAccumulator` is
created per ``build()`` call and shared by the SET, WHERE and HAVING
builders.  Clauses are rendered strictly left to right, so the accumulated
values line up with the ``?`` markers in the final text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from minerql.compile.clause_builders import (
    CriteriaClauseBuilder,
    DeleteClauseBuilder,
    FromClauseBuilder,
    GroupByClauseBuilder,
    JoinClauseBuilder,
    LimitClauseBuilder,
    OptionsClauseBuilder,
    OrderByClauseBuilder,
    SelectClauseBuilder,
    SetClauseBuilder,
    TargetClauseBuilder,
)
from minerql.compile.context import CompilationContext
from minerql.compile.criteria import PlaceholderAccumulator
from minerql.compile.mysql import MySQLCompiler
from minerql.errors import CompilationError
from minerql.logging import get_logger
from minerql.schema.statement import StatementState, Verb

logger = get_logger(__name__)

#: Clause names accepted by :meth:`StatementCompiler.render_clause`.
CLAUSES = (
    "options",
    "select",
    "insert",
    "replace",
    "update",
    "delete",
    "set",
    "from",
    "join",
    "where",
    "group_by",
    "having",
    "order_by",
    "limit",
)


@dataclass
class CompiledStatement:
    """The output of a successful compilation.

    Attributes:
        sql: SQL text with positional ``?`` placeholders; ``""`` when the
            builder has no active verb.
        params: Values for the placeholders, in order.
        verb: The statement kind that was rendered, if any.
    """

    sql: str
    params: list[Any]
    verb: Verb | None

    def __str__(self) -> str:
        return self.sql


class StatementCompiler:
    """Compiles a :class:`StatementState` to parameterized SQL.

    Args:
        compiler: Dialect compiler; defaults to :class:`MySQLCompiler`.
        strict: Enable strict-mode validation in every clause builder.
    """

    def __init__(self, compiler: MySQLCompiler | None = None, strict: bool = False) -> None:
        self._ctx = CompilationContext(compiler=compiler or MySQLCompiler(), strict=strict)

    @property
    def strict(self) -> bool:
        return self._ctx.strict

    def quote_identifier(self, name: str) -> str:
        return self._ctx.compiler.quote_identifier(name)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, state: StatementState) -> CompiledStatement:
        """Compile ``state`` to SQL and its placeholder values.

        Raises:
            InvalidIdentifierError: If any table or column name is rejected.
            CriteriaError: On a strict-mode violation.
        """
        runtime = PlaceholderAccumulator(placeholder=self._ctx.compiler.param_placeholder())
        sub_builders = self._make_sub_builders(runtime)
        verb = state.verb()
        parts = self._compose(state, verb, sub_builders) if verb is not None else []
        sql = " ".join(part for part in parts if part)
        logger.debug(
            "statement_compiled",
            verb=verb.value if verb is not None else None,
            placeholders=len(runtime.values),
        )
        return CompiledStatement(sql=sql, params=runtime.values, verb=verb)

    def render_clause(
        self, state: StatementState, name: str, include_text: bool = True
    ) -> tuple[str, list[Any]]:
        """Render a single clause in isolation.

        Args:
            state: The statement state.
            name: One of :data:`CLAUSES`.
            include_text: Prefix the clause keyword (``WHERE``, ``SET``, ...).

        Returns:
            ``(sql, values)`` for that clause alone.

        Raises:
            CompilationError: If ``name`` is not a known clause.
        """
        runtime = PlaceholderAccumulator(placeholder=self._ctx.compiler.param_placeholder())
        b = self._make_sub_builders(runtime)
        if name == "options":
            sql = b["options"].build(state)
        elif name == "select":
            sql = b["select"].build(state, include_text)
        elif name in ("insert", "replace", "update"):
            sql = b["target"].build(state, Verb(name.upper()), include_text)
        elif name == "delete":
            sql = b["delete"].build(state, include_text)
        elif name == "set":
            sql = b["set"].build(state, include_text)
        elif name == "from":
            sql = b["from"].build(state, include_text)
        elif name == "join":
            sql = b["join"].build(state)
        elif name == "where":
            sql = b["where"].build(state.where, include_text)
        elif name == "group_by":
            sql = b["group_by"].build(state, include_text)
        elif name == "having":
            sql = b["having"].build(state.having, include_text)
        elif name == "order_by":
            sql = b["order_by"].build(state, include_text)
        elif name == "limit":
            sql = b["limit"].build(state, include_text)
        else:
            raise CompilationError(f"Unknown clause: {name!r}", clause=name)
        return sql, runtime.values

    # ------------------------------------------------------------------
    # Per-verb composition
    # ------------------------------------------------------------------

    def _compose(self, state: StatementState, verb: Verb, b: dict) -> list[str]:
        if verb is Verb.SELECT:
            return [
                b["select"].build(state),
                b["from"].build(state),
                b["where"].build(state.where),
                b["group_by"].build(state),
                b["having"].build(state.having),
                b["order_by"].build(state),
                b["limit"].build(state),
            ]

        if verb in (Verb.INSERT, Verb.REPLACE):
            return [b["target"].build(state, verb), b["set"].build(state)]

        if verb is Verb.UPDATE:
            parts = [
                b["target"].build(state, verb),
                b["set"].build(state),
                b["where"].build(state.where),
            ]
        else:
            parts = [
                b["delete"].build(state),
                b["from"].build(state),
                b["where"].build(state.where),
            ]

        if state.allows_order_and_limit():
            parts.append(b["order_by"].build(state))
            parts.append(b["limit"].build(state))
        return parts

    # ------------------------------------------------------------------
    # Sub-builder wiring
    # ------------------------------------------------------------------

    def _make_sub_builders(self, runtime: PlaceholderAccumulator) -> dict:
        """Construct the sub-builder graph for one compilation run."""
        options = OptionsClauseBuilder(self._ctx)
        joins = JoinClauseBuilder(self._ctx)
        return {
            "options": options,
            "select": SelectClauseBuilder(self._ctx, options),
            "target": TargetClauseBuilder(self._ctx, options, joins),
            "delete": DeleteClauseBuilder(self._ctx, options),
            "set": SetClauseBuilder(self._ctx, runtime),
            "from": FromClauseBuilder(self._ctx, joins),
            "join": joins,
            "where": CriteriaClauseBuilder(self._ctx, runtime, "WHERE"),
            "group_by": GroupByClauseBuilder(self._ctx),
            "having": CriteriaClauseBuilder(self._ctx, runtime, "HAVING"),
            "order_by": OrderByClauseBuilder(self._ctx),
            "limit": LimitClauseBuilder(),
        }
