"""Clause-level SQL builders.

Each class handles exactly one SQL clause and returns ``""`` when that
clause has nothing to render, so the statement compiler never emits a bare
keyword or a dangling separator.  Builders that bind values (``SET``,
``WHERE``, ``HAVING``) receive the run's
:class:`~minerql.compile.criteria.PlaceholderAccumulator`; the rest only
need the :class:`~minerql.compile.context.CompilationContext`.

Classes
-------
OptionsClauseBuilder: ``DISTINCT`` / ``IGNORE`` / ... modifiers
SelectClauseBuilder: ``SELECT <options> <columns>``
TargetClauseBuilder: ``INSERT`` / ``REPLACE`` / ``UPDATE <table>``
DeleteClauseBuilder: ``DELETE [<tables>]``
SetClauseBuilder: ``SET col = ?, ...``
JoinClauseBuilder: ``<TYPE> JOIN … ON …``
FromClauseBuilder: ``FROM <table> [AS alias] <joins>``
CriteriaClauseBuilder: ``WHERE …`` / ``HAVING …``
GroupByClauseBuilder: ``GROUP BY …``
OrderByClauseBuilder: ``ORDER BY …``
LimitClauseBuilder: ``LIMIT n [OFFSET m]``
"""
from __future__ import annotations

from minerql.compile.context import CompilationContext
from minerql.compile.criteria import CriteriaBuilder, PlaceholderAccumulator
from minerql.errors import CriteriaError
from minerql.schema.criteria import Criteria
from minerql.schema.expressions import KNOWN_OPTIONS
from minerql.schema.statement import JoinSpec, StatementState, Verb


class OptionsClauseBuilder:
    """Builds the space-separated statement modifiers that follow the verb."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: StatementState, include_trailing_space: bool = False) -> str:
        if not state.options:
            return ""
        if self._ctx.strict:
            unknown = [o for o in state.options if o.upper() not in KNOWN_OPTIONS]
            if unknown:
                raise CriteriaError(f"Unknown statement option(s): {unknown}.", clause="OPTIONS")
        statement = " ".join(state.options)
        return f"{statement} " if include_trailing_space else statement


class SelectClauseBuilder:
    """Builds the ``SELECT [options] …`` clause."""

    def __init__(self, ctx: CompilationContext, options: OptionsClauseBuilder) -> None:
        self._ctx = ctx
        self._options = options

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if not state.select:
            return ""
        quote = self._ctx.compiler.quote_identifier
        items: list[str] = []
        for item in state.select:
            sql = quote(item.column)
            if item.alias:
                sql = f"{sql} AS {quote(item.alias)}"
            items.append(sql)
        statement = self._options.build(state, include_trailing_space=True) + ", ".join(items)
        return f"SELECT {statement}" if include_text else statement


class JoinClauseBuilder:
    """Builds every ``<TYPE> JOIN … ON …`` fragment, space separated.

    A criterion containing ``=`` is used verbatim.  Anything else is taken
    as a column name shared by both sides and expanded to
    ``prev.column = table.column``, where ``prev`` is the previous join's
    table or, for the first join, the statement's root table.
    """

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: StatementState) -> str:
        fragments: list[str] = []
        for index, join in enumerate(state.joins):
            previous = state.joins[index - 1].table if index > 0 else state.join_root_table()
            fragments.append(self._build_join(join, previous))
        return " ".join(fragments)

    def _build_join(self, join: JoinSpec, previous: str | None) -> str:
        quote = self._ctx.compiler.quote_identifier
        sql = f"{join.type.value} {quote(join.table)}"
        if join.alias:
            sql = f"{sql} AS {quote(join.alias)}"
        if join.criteria:
            conditions = [
                criterion if "=" in criterion else self._infer(previous, join.table, criterion)
                for criterion in join.criteria
            ]
            sql = f"{sql} ON {' AND '.join(conditions)}"
        return sql

    def _infer(self, previous: str | None, table: str, column: str) -> str:
        quote = self._ctx.compiler.quote_identifier
        left = f"{quote(previous)}.{quote(column)}" if previous else quote(column)
        return f"{left} = {quote(table)}.{quote(column)}"


class TargetClauseBuilder:
    """Builds ``INSERT <table>``, ``REPLACE <table>`` and ``UPDATE <table> [joins]``."""

    def __init__(
        self,
        ctx: CompilationContext,
        options: OptionsClauseBuilder,
        joins: JoinClauseBuilder,
    ) -> None:
        self._ctx = ctx
        self._options = options
        self._joins = joins

    def build(self, state: StatementState, verb: Verb, include_text: bool = True) -> str:
        table = {
            Verb.INSERT: state.insert,
            Verb.REPLACE: state.replace,
            Verb.UPDATE: state.update,
        }.get(verb)
        if not table:
            return ""
        statement = self._options.build(state, include_trailing_space=True)
        statement += self._ctx.compiler.quote_identifier(table)
        if verb is Verb.UPDATE:
            join_sql = self._joins.build(state)
            if join_sql:
                statement = f"{statement} {join_sql}"
        return f"{verb.value} {statement}" if include_text else statement


class DeleteClauseBuilder:
    """Builds ``DELETE [options] [tables]``.

    With the FROM-table form the table list is empty and the target comes
    from the FROM clause that follows.
    """

    def __init__(self, ctx: CompilationContext, options: OptionsClauseBuilder) -> None:
        self._ctx = ctx
        self._options = options

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if not state.is_delete():
            return ""
        quote = self._ctx.compiler.quote_identifier
        statement = self._options.build(state, include_trailing_space=True)
        statement += ", ".join(quote(t) for t in state.delete_tables)
        statement = statement.strip()
        if include_text:
            return f"DELETE {statement}".strip()
        return statement


class SetClauseBuilder:
    """Builds ``SET col = ?, …``, binding each value in insertion order."""

    def __init__(self, ctx: CompilationContext, runtime: PlaceholderAccumulator) -> None:
        self._ctx = ctx
        self._runtime = runtime

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if not state.assignments:
            return ""
        quote = self._ctx.compiler.quote_identifier
        statement = ", ".join(
            f"{quote(a.column)} = {self._runtime.add(a.value)}" for a in state.assignments
        )
        return f"SET {statement}" if include_text else statement


class FromClauseBuilder:
    """Builds ``FROM <table> [AS alias] [joins]``."""

    def __init__(self, ctx: CompilationContext, joins: JoinClauseBuilder) -> None:
        self._ctx = ctx
        self._joins = joins

    def build(self, state: StatementState, include_text: bool = True) -> str:
        frm = state.from_table
        if frm is None:
            return ""
        quote = self._ctx.compiler.quote_identifier
        statement = quote(frm.table)
        if frm.alias:
            statement = f"{statement} AS {quote(frm.alias)}"
        join_sql = self._joins.build(state)
        if join_sql:
            statement = f"{statement} {join_sql}"
        return f"FROM {statement}" if include_text else statement


class CriteriaClauseBuilder:
    """Builds ``WHERE …`` or ``HAVING …`` around a :class:`CriteriaBuilder`."""

    def __init__(
        self,
        ctx: CompilationContext,
        runtime: PlaceholderAccumulator,
        keyword: str,
    ) -> None:
        self._keyword = keyword
        self._criteria = CriteriaBuilder(ctx, runtime, clause=keyword)

    def build(self, criteria: Criteria, include_text: bool = True) -> str:
        statement = self._criteria.build(criteria)
        if include_text and statement:
            return f"{self._keyword} {statement}"
        return statement


class GroupByClauseBuilder:
    """Builds ``GROUP BY col [ASC|DESC], …``."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if not state.group_by:
            return ""
        quote = self._ctx.compiler.quote_identifier
        items: list[str] = []
        for item in state.group_by:
            sql = quote(item.column)
            if item.direction is not None:
                sql = f"{sql} {item.direction.value}"
            items.append(sql)
        statement = ", ".join(items)
        return f"GROUP BY {statement}" if include_text else statement


class OrderByClauseBuilder:
    """Builds ``ORDER BY col ASC|DESC, …``."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if not state.order_by:
            return ""
        quote = self._ctx.compiler.quote_identifier
        statement = ", ".join(f"{quote(o.column)} {o.direction.value}" for o in state.order_by)
        return f"ORDER BY {statement}" if include_text else statement


class LimitClauseBuilder:
    """Builds ``LIMIT n [OFFSET m]``; a zero offset is left out."""

    def build(self, state: StatementState, include_text: bool = True) -> str:
        if state.limit is None:
            return ""
        statement = str(state.limit.count)
        if state.limit.offset:
            statement = f"{statement} OFFSET {state.limit.offset}"
        return f"LIMIT {statement}" if include_text else statement
