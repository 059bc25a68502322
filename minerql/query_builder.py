"""Fluent SQL statement builder.

``QueryBuilder`` accumulates intent in a :class:`StatementState` through
chainable calls made in any order, and renders it on demand through a
:class:`~minerql.compile.builder.StatementCompiler`::

    qb = (
        QueryBuilder()
        .select("id")
        .select("name", "user_name")
        .from_("users")
        .left_join("orders", "user_id")
        .where("status", "active")
        .open_where("OR")
        .where_between("age", 18, 65)
        .close_where()
        .order_by("name")
        .limit(10)
    )
    sql, values = qb.get_statement(), qb.get_placeholder_values()

Rendering never mutates the builder; repeated calls return identical
results.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from minerql.compile.builder import CompiledStatement, StatementCompiler
from minerql.schema.expressions import Connector, JoinType, Operator, OrderDirection
from minerql.schema.statement import (
    FromClause,
    GroupByItem,
    JoinSpec,
    LimitClause,
    OrderByItem,
    SelectItem,
    SetAssignment,
    StatementState,
)


class QueryBuilder:
    """Builds one SELECT, INSERT, REPLACE, UPDATE or DELETE statement.

    The active statement kind follows from which target has been set; when
    several are set, SELECT wins over INSERT over REPLACE over UPDATE over
    DELETE.

    Args:
        strict: Reject unbalanced brackets, empty IN lists, unknown IS
            keywords and unknown statement options with
            :class:`~minerql.errors.CriteriaError` instead of rendering them.
    """

    def __init__(self, strict: bool = False) -> None:
        self._state = StatementState()
        self._compiler = StatementCompiler(strict=strict)

    @classmethod
    def from_state(cls, state: StatementState, strict: bool = False) -> QueryBuilder:
        """Return a builder over a deep copy of ``state``."""
        builder = cls(strict=strict)
        builder._state = state.model_copy(deep=True)
        return builder

    @property
    def state(self) -> StatementState:
        """The accumulated statement state (read it, don't mutate it)."""
        return self._state

    @property
    def strict(self) -> bool:
        return self._compiler.strict

    def _render(self, clause: str, include_text: bool = True) -> str:
        return self._compiler.render_clause(self._state, clause, include_text)[0]

    def _values(self, clause: str) -> list[Any]:
        return self._compiler.render_clause(self._state, clause)[1]

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def option(self, option: str) -> QueryBuilder:
        """Add a statement modifier such as ``SQL_CALC_FOUND_ROWS`` or ``IGNORE``."""
        self._state.options.append(option)
        return self

    def distinct(self) -> QueryBuilder:
        return self.option("DISTINCT")

    def get_options_string(self, include_trailing_space: bool = False) -> str:
        sql = self._render("options")
        return f"{sql} " if sql and include_trailing_space else sql

    def merge_options_into(self, builder: QueryBuilder) -> QueryBuilder:
        for option in list(self._state.options):
            builder.option(option)
        return builder

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def select(self, column: str, alias: str | None = None) -> QueryBuilder:
        """Add a column, ``table.*`` or ``*`` to the SELECT list.

        Selecting a column that is already listed keeps its position and
        replaces its alias.
        """
        for index, item in enumerate(self._state.select):
            if item.column == column:
                self._state.select[index] = SelectItem(column=column, alias=alias)
                return self
        self._state.select.append(SelectItem(column=column, alias=alias))
        return self

    def get_select_string(self, include_text: bool = True) -> str:
        return self._render("select", include_text)

    def merge_select_into(self, builder: QueryBuilder) -> QueryBuilder:
        self.merge_options_into(builder)
        for item in list(self._state.select):
            builder.select(item.column, item.alias)
        return builder

    # ------------------------------------------------------------------
    # INSERT / REPLACE / UPDATE targets
    # ------------------------------------------------------------------

    def insert(self, table: str) -> QueryBuilder:
        self._state.insert = table
        return self

    def get_insert(self) -> str | None:
        return self._state.insert

    def get_insert_string(self, include_text: bool = True) -> str:
        return self._render("insert", include_text)

    def merge_insert_into(self, builder: QueryBuilder) -> QueryBuilder:
        self.merge_options_into(builder)
        if self._state.insert:
            builder.insert(self._state.insert)
        return builder

    def replace(self, table: str) -> QueryBuilder:
        self._state.replace = table
        return self

    def get_replace(self) -> str | None:
        return self._state.replace

    def get_replace_string(self, include_text: bool = True) -> str:
        return self._render("replace", include_text)

    def merge_replace_into(self, builder: QueryBuilder) -> QueryBuilder:
        self.merge_options_into(builder)
        if self._state.replace:
            builder.replace(self._state.replace)
        return builder

    def update(self, table: str) -> QueryBuilder:
        self._state.update = table
        return self

    def get_update(self) -> str | None:
        return self._state.update

    def get_update_string(self, include_text: bool = True) -> str:
        """``UPDATE [options] `table` [joins]``."""
        return self._render("update", include_text)

    def merge_update_into(self, builder: QueryBuilder) -> QueryBuilder:
        self.merge_options_into(builder)
        if self._state.update:
            builder.update(self._state.update)
        return builder

    # ------------------------------------------------------------------
    # DELETE
    # ------------------------------------------------------------------

    def delete(self, table: str | None = None) -> QueryBuilder:
        """Make this a DELETE statement.

        Args:
            table: A table to delete rows from (call repeatedly for a
                multi-table delete).  Without a table, rows are deleted from
                the FROM table, which is the only form that supports ORDER BY
                and LIMIT.
        """
        if table is None:
            self._state.delete_from = True
            self._state.delete_tables = []
        else:
            self._state.delete_from = False
            self._state.delete_tables.append(table)
        return self

    def get_delete_string(self, include_text: bool = True) -> str:
        return self._render("delete", include_text)

    def merge_delete_into(self, builder: QueryBuilder) -> QueryBuilder:
        self.merge_options_into(builder)
        if self._state.delete_from:
            builder.delete()
        else:
            for table in list(self._state.delete_tables):
                builder.delete(table)
        return builder

    # ------------------------------------------------------------------
    # SET
    # ------------------------------------------------------------------

    def set(self, column: str | Mapping[str, Any], value: Any = None) -> QueryBuilder:
        """Add ``column = ?`` to the SET clause.

        ``column`` may also be a mapping of columns to values, added in
        iteration order.
        """
        if isinstance(column, Mapping):
            for name, item in column.items():
                self.set(name, item)
            return self
        self._state.assignments.append(SetAssignment(column=column, value=value))
        return self

    def values(self, values: Mapping[str, Any]) -> QueryBuilder:
        return self.set(values)

    def get_set_string(self, include_text: bool = True) -> str:
        return self._render("set", include_text)

    def get_set_placeholder_values(self) -> list[Any]:
        return self._values("set")

    def merge_set_into(self, builder: QueryBuilder) -> QueryBuilder:
        assignments = [a.model_copy(deep=True) for a in self._state.assignments]
        for assignment in assignments:
            builder.set(assignment.column, assignment.value)
        return builder

    # ------------------------------------------------------------------
    # FROM / JOIN
    # ------------------------------------------------------------------

    def from_(self, table: str, alias: str | None = None) -> QueryBuilder:
        self._state.from_table = FromClause(table=table, alias=alias)
        return self

    def get_from(self) -> str | None:
        frm = self._state.from_table
        return frm.table if frm is not None else None

    def get_from_alias(self) -> str | None:
        frm = self._state.from_table
        return frm.alias if frm is not None else None

    def get_from_string(self, include_text: bool = True) -> str:
        """``FROM `table` [AS `alias`]`` followed by every join."""
        return self._render("from", include_text)

    def merge_from_into(self, builder: QueryBuilder) -> QueryBuilder:
        frm = self._state.from_table
        if frm is not None:
            builder.from_(frm.table, frm.alias)
        return builder

    def join(
        self,
        table: str,
        criteria: str | Iterable[str] | None = None,
        type: JoinType | str = JoinType.INNER,
        alias: str | None = None,
    ) -> QueryBuilder:
        """Join ``table``.

        Args:
            table: Table to join.
            criteria: One ON condition or several (combined with ``AND``).
                Conditions are raw SQL; a condition without ``=`` is a column
                name matched against the same column of the previous table.
            type: ``INNER JOIN``, ``LEFT JOIN`` or ``RIGHT JOIN``.
            alias: Alias for the joined table.

        Joining the same ``(table, alias)`` twice is a no-op.
        """
        if self._state.has_join(table, alias):
            return self
        if criteria is None:
            conditions: tuple[str, ...] = ()
        elif isinstance(criteria, str):
            conditions = (criteria,)
        else:
            conditions = tuple(criteria)
        self._state.joins.append(
            JoinSpec(table=table, alias=alias, type=JoinType(type), criteria=conditions)
        )
        return self

    def inner_join(
        self, table: str, criteria: str | Iterable[str] | None = None, alias: str | None = None
    ) -> QueryBuilder:
        return self.join(table, criteria, JoinType.INNER, alias)

    def left_join(
        self, table: str, criteria: str | Iterable[str] | None = None, alias: str | None = None
    ) -> QueryBuilder:
        return self.join(table, criteria, JoinType.LEFT, alias)

    def right_join(
        self, table: str, criteria: str | Iterable[str] | None = None, alias: str | None = None
    ) -> QueryBuilder:
        return self.join(table, criteria, JoinType.RIGHT, alias)

    def get_join_string(self) -> str:
        return self._render("join")

    def merge_join_into(self, builder: QueryBuilder) -> QueryBuilder:
        for join in list(self._state.joins):
            builder.join(join.table, join.criteria, join.type, join.alias)
        return builder

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def where(
        self,
        column: str,
        value: Any,
        operator: Operator | str = Operator.EQUALS,
        connector: Connector | str = Connector.AND,
    ) -> QueryBuilder:
        """Add a WHERE criterion.

        The shape of ``value`` depends on ``operator``: a ``(low, high)``
        pair for ``BETWEEN``, a sequence for ``IN``, ``None`` or a keyword
        such as ``"NOT NULL"`` for ``IS``, otherwise a single value.

        Raises:
            CriteriaError: If ``value`` does not fit the operator.
        """
        self._state.where.add(column, value, operator, connector)
        return self

    def and_where(
        self, column: str, value: Any, operator: Operator | str = Operator.EQUALS
    ) -> QueryBuilder:
        return self.where(column, value, operator, Connector.AND)

    def or_where(
        self, column: str, value: Any, operator: Operator | str = Operator.EQUALS
    ) -> QueryBuilder:
        return self.where(column, value, operator, Connector.OR)

    def where_in(
        self, column: str, values: Sequence[Any], connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.where(column, values, Operator.IN, connector)

    def where_not_in(
        self, column: str, values: Sequence[Any], connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.where(column, values, Operator.NOT_IN, connector)

    def where_between(
        self, column: str, low: Any, high: Any, connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.where(column, (low, high), Operator.BETWEEN, connector)

    def where_not_between(
        self, column: str, low: Any, high: Any, connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.where(column, (low, high), Operator.NOT_BETWEEN, connector)

    def open_where(self, connector: Connector | str = Connector.AND) -> QueryBuilder:
        """Open a bracket in the WHERE clause, joined by ``connector``."""
        self._state.where.open(connector)
        return self

    def close_where(self) -> QueryBuilder:
        self._state.where.close()
        return self

    def get_where_string(self, include_text: bool = True) -> str:
        return self._render("where", include_text)

    def get_where_placeholder_values(self) -> list[Any]:
        return self._values("where")

    def merge_where_into(self, builder: QueryBuilder) -> QueryBuilder:
        self._state.where.merge_into(builder._state.where)
        return builder

    # ------------------------------------------------------------------
    # GROUP BY
    # ------------------------------------------------------------------

    def group_by(
        self, column: str, order: OrderDirection | str | None = None
    ) -> QueryBuilder:
        direction = OrderDirection(order) if order is not None else None
        self._state.group_by.append(GroupByItem(column=column, direction=direction))
        return self

    def get_group_by_string(self, include_text: bool = True) -> str:
        return self._render("group_by", include_text)

    def merge_group_by_into(self, builder: QueryBuilder) -> QueryBuilder:
        for item in list(self._state.group_by):
            builder.group_by(item.column, item.direction)
        return builder

    # ------------------------------------------------------------------
    # HAVING
    # ------------------------------------------------------------------

    def having(
        self,
        column: str,
        value: Any,
        operator: Operator | str = Operator.EQUALS,
        connector: Connector | str = Connector.AND,
    ) -> QueryBuilder:
        """Add a HAVING criterion; ``value`` follows the same rules as :meth:`where`."""
        self._state.having.add(column, value, operator, connector)
        return self

    def and_having(
        self, column: str, value: Any, operator: Operator | str = Operator.EQUALS
    ) -> QueryBuilder:
        return self.having(column, value, operator, Connector.AND)

    def or_having(
        self, column: str, value: Any, operator: Operator | str = Operator.EQUALS
    ) -> QueryBuilder:
        return self.having(column, value, operator, Connector.OR)

    def having_in(
        self, column: str, values: Sequence[Any], connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.having(column, values, Operator.IN, connector)

    def having_not_in(
        self, column: str, values: Sequence[Any], connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.having(column, values, Operator.NOT_IN, connector)

    def having_between(
        self, column: str, low: Any, high: Any, connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.having(column, (low, high), Operator.BETWEEN, connector)

    def having_not_between(
        self, column: str, low: Any, high: Any, connector: Connector | str = Connector.AND
    ) -> QueryBuilder:
        return self.having(column, (low, high), Operator.NOT_BETWEEN, connector)

    def open_having(self, connector: Connector | str = Connector.AND) -> QueryBuilder:
        self._state.having.open(connector)
        return self

    def close_having(self) -> QueryBuilder:
        self._state.having.close()
        return self

    def get_having_string(self, include_text: bool = True) -> str:
        return self._render("having", include_text)

    def get_having_placeholder_values(self) -> list[Any]:
        return self._values("having")

    def merge_having_into(self, builder: QueryBuilder) -> QueryBuilder:
        self._state.having.merge_into(builder._state.having)
        return builder

    # ------------------------------------------------------------------
    # ORDER BY / LIMIT
    # ------------------------------------------------------------------

    def order_by(
        self, column: str, order: OrderDirection | str = OrderDirection.ASC
    ) -> QueryBuilder:
        self._state.order_by.append(OrderByItem(column=column, direction=OrderDirection(order)))
        return self

    def get_order_by_string(self, include_text: bool = True) -> str:
        return self._render("order_by", include_text)

    def merge_order_by_into(self, builder: QueryBuilder) -> QueryBuilder:
        for item in list(self._state.order_by):
            builder.order_by(item.column, item.direction)
        return builder

    def limit(self, count: int, offset: int = 0) -> QueryBuilder:
        """Set ``LIMIT count [OFFSET offset]``; replaces any earlier limit."""
        self._state.limit = LimitClause(count=count, offset=offset)
        return self

    def get_limit(self) -> int | None:
        return self._state.limit.count if self._state.limit is not None else None

    def get_limit_offset(self) -> int | None:
        return self._state.limit.offset if self._state.limit is not None else None

    def get_limit_string(self, include_text: bool = True) -> str:
        return self._render("limit", include_text)

    def merge_limit_into(self, builder: QueryBuilder) -> QueryBuilder:
        if self._state.limit is not None:
            builder.limit(self._state.limit.count, self._state.limit.offset)
        return builder

    # ------------------------------------------------------------------
    # Statement kind
    # ------------------------------------------------------------------

    def is_select(self) -> bool:
        return self._state.is_select()

    def is_insert(self) -> bool:
        return self._state.is_insert()

    def is_replace(self) -> bool:
        return self._state.is_replace()

    def is_update(self) -> bool:
        return self._state.is_update()

    def is_delete(self) -> bool:
        return self._state.is_delete()

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge_into(self, builder: QueryBuilder, override_limit: bool = True) -> QueryBuilder:
        """Copy every clause of the active statement into ``builder``.

        Criteria, SET values and every other element are deep copies, so
        later changes to either builder do not affect the other.  Passing
        ``QueryBuilder()`` as ``builder`` clones this builder.
        Merging a builder into itself appends a second copy of each
        criterion, assignment and ordering.

        Args:
            builder: Builder to merge into.
            override_limit: Also copy LIMIT, replacing any limit ``builder``
                already has.

        Returns:
            ``builder``.
        """
        state = self._state
        if state.is_select():
            self.merge_select_into(builder)
            self.merge_from_into(builder)
            self.merge_join_into(builder)
            self.merge_where_into(builder)
            self.merge_group_by_into(builder)
            self.merge_having_into(builder)
        elif state.is_insert():
            self.merge_insert_into(builder)
            self.merge_set_into(builder)
        elif state.is_replace():
            self.merge_replace_into(builder)
            self.merge_set_into(builder)
        elif state.is_update():
            self.merge_update_into(builder)
            self.merge_join_into(builder)
            self.merge_set_into(builder)
            self.merge_where_into(builder)
        elif state.is_delete():
            self.merge_delete_into(builder)
            self.merge_from_into(builder)
            self.merge_join_into(builder)
            self.merge_where_into(builder)
        else:
            return builder

        # UPDATE and DELETE only carry ORDER BY and LIMIT in their single-table forms.
        if state.allows_order_and_limit():
            self.merge_order_by_into(builder)
            if override_limit:
                self.merge_limit_into(builder)
        return builder

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def compile(self) -> CompiledStatement:
        """Render the statement and its placeholder values in one pass."""
        return self._compiler.build(self._state)

    def get_statement(self) -> str:
        """Return the SQL for the active statement, or ``""`` if there is none."""
        return self.compile().sql

    def get_placeholder_values(self) -> list[Any]:
        """Return SET, then WHERE, then HAVING values for the active statement.

        Only clauses the active statement renders contribute, so the list
        lines up with the ``?`` markers in :meth:`get_statement`.
        """
        return self.compile().params

    def escape_identifier(self, name: str) -> str:
        return self._compiler.quote_identifier(name)

    def __str__(self) -> str:
        return self.get_statement()

    def __repr__(self) -> str:
        verb = self._state.verb()
        return f"<QueryBuilder {verb.value if verb is not None else 'EMPTY'}>"
