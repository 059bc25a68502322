"""Pydantic models for the state accumulated by a fluent ``QueryBuilder``.

``StatementState`` keeps one explicit, ordered field per clause.  Nothing in
here renders SQL; compilation lives in :mod:`minerql.compile`.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from minerql.schema.criteria import Criteria
from minerql.schema.expressions import JoinType, OrderDirection
from minerql.schema.values import BoundValue


class Verb(str, Enum):
    """The statement kinds a builder can produce."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    REPLACE = "REPLACE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SelectItem(BaseModel):
    """A single column in the SELECT list.

    Attributes:
        column: Column name, ``table.column`` path, or ``*``.
        alias: Optional alias rendered as ``AS `alias```.
    """

    model_config = ConfigDict(extra="forbid")

    column: str
    alias: str | None = None


class FromClause(BaseModel):
    """The FROM table (also the DELETE source table).

    Attributes:
        table: Table name.
        alias: Optional table alias.
    """

    model_config = ConfigDict(extra="forbid")

    table: str
    alias: str | None = None


class JoinSpec(BaseModel):
    """A single JOIN entry.

    Criteria are raw SQL text.  A criterion without ``=`` is a column name
    shorthand, expanded at render time against the previous table.

    Attributes:
        table: Joined table name.
        alias: Optional alias for the joined table.
        type: Join type.
        criteria: ON criteria, combined with ``AND``.
    """

    model_config = ConfigDict(extra="forbid")

    table: str
    alias: str | None = None
    type: JoinType = JoinType.INNER
    criteria: tuple[str, ...] = ()


class SetAssignment(BaseModel):
    """``column = ?`` in the SET clause of INSERT / REPLACE / UPDATE."""

    model_config = ConfigDict(extra="forbid")

    column: str
    value: BoundValue = None


class GroupByItem(BaseModel):
    """A GROUP BY column with MySQL's optional (legacy) sort direction."""

    model_config = ConfigDict(extra="forbid")

    column: str
    direction: OrderDirection | None = None


class OrderByItem(BaseModel):
    """A single ORDER BY column."""

    model_config = ConfigDict(extra="forbid")

    column: str
    direction: OrderDirection = OrderDirection.ASC


class LimitClause(BaseModel):
    """LIMIT clause.

    Attributes:
        count: Maximum number of rows.
        offset: Rows to skip; ``0`` is omitted from the rendered SQL.
    """

    model_config = ConfigDict(extra="forbid")

    count: int = Field(ge=0)
    offset: int = Field(0, ge=0)


class StatementState(BaseModel):
    """Everything a builder has been told, one field per clause.

    The active :class:`Verb` is implied by which target fields are set; see
    :meth:`verb`.

    Attributes:
        options: Raw statement modifiers (``DISTINCT``, ``IGNORE``, ...).
        select: SELECT list in insertion order.
        insert: INSERT target table.
        replace: REPLACE target table.
        update: UPDATE target table.
        delete_tables: Explicit multi-table DELETE targets.
        delete_from: ``True`` when deleting from the FROM table.
        assignments: SET clause entries.
        from_table: FROM table (SELECT / DELETE).
        joins: JOIN entries in insertion order.
        where: WHERE criteria.
        group_by: GROUP BY entries.
        having: HAVING criteria.
        order_by: ORDER BY entries.
        limit: LIMIT / OFFSET.
    """

    model_config = ConfigDict(extra="forbid")

    options: list[str] = Field(default_factory=list)
    select: list[SelectItem] = Field(default_factory=list)
    insert: str | None = None
    replace: str | None = None
    update: str | None = None
    delete_tables: list[str] = Field(default_factory=list)
    delete_from: bool = False
    assignments: list[SetAssignment] = Field(default_factory=list)
    from_table: FromClause | None = None
    joins: list[JoinSpec] = Field(default_factory=list)
    where: Criteria = Field(default_factory=Criteria)
    group_by: list[GroupByItem] = Field(default_factory=list)
    having: Criteria = Field(default_factory=Criteria)
    order_by: list[OrderByItem] = Field(default_factory=list)
    limit: LimitClause | None = None

    # ------------------------------------------------------------------
    # Verb detection
    # ------------------------------------------------------------------

    def is_select(self) -> bool:
        return bool(self.select)

    def is_insert(self) -> bool:
        return bool(self.insert)

    def is_replace(self) -> bool:
        return bool(self.replace)

    def is_update(self) -> bool:
        return bool(self.update)

    def is_delete(self) -> bool:
        return self.delete_from or bool(self.delete_tables)

    def verb(self) -> Verb | None:
        """Return the active verb; SELECT wins over INSERT over REPLACE, etc."""
        if self.is_select():
            return Verb.SELECT
        if self.is_insert():
            return Verb.INSERT
        if self.is_replace():
            return Verb.REPLACE
        if self.is_update():
            return Verb.UPDATE
        if self.is_delete():
            return Verb.DELETE
        return None

    # ------------------------------------------------------------------
    # Join helpers
    # ------------------------------------------------------------------

    def has_join(self, table: str, alias: str | None) -> bool:
        """Return ``True`` if a join on ``(table, alias)`` already exists."""
        return any(j.table == table and j.alias == alias for j in self.joins)

    def join_root_table(self) -> str | None:
        """Table that the first join's shorthand criteria compare against."""
        verb = self.verb()
        if verb is Verb.UPDATE:
            return self.update
        if verb in (Verb.SELECT, Verb.DELETE) and self.from_table is not None:
            return self.from_table.table
        return None

    def allows_order_and_limit(self) -> bool:
        """ORDER BY / LIMIT only apply to single-table UPDATE and DELETE."""
        verb = self.verb()
        if verb is Verb.UPDATE:
            return not self.joins
        if verb is Verb.DELETE:
            return self.delete_from
        return verb is Verb.SELECT
