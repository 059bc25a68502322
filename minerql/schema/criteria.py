"""Typed criterion models for WHERE and HAVING clauses.

Each operator family gets its own variant so that the renderer can switch
exhaustively on the node type instead of inspecting value shapes at runtime:

* :class:`ComparisonCriterion`: ``col = ?`` (one placeholder)
* :class:`RangeCriterion`: ``col BETWEEN ? AND ?`` (two placeholders)
* :class:`MembershipCriterion`: ``col IN (?, ?, ?)`` (one per element)
* :class:`KeywordCriterion`: ``col IS NULL`` (no placeholder)

Grouping is expressed with :class:`OpenBracket` / :class:`CloseBracket`
markers interleaved with criteria in the same ordered :class:`Criteria`
sequence.  Bracket balance is the caller's responsibility unless the
statement is compiled in strict mode.

Usage::

    criteria = Criteria()
    criteria.add("status", "active")
    criteria.open(Connector.OR)
    criteria.add("age", (18, 65), Operator.BETWEEN)
    criteria.close()
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from minerql.errors import CriteriaError
from minerql.schema.expressions import (
    COMPARISON_OPERATORS,
    KEYWORD_OPERATORS,
    MEMBERSHIP_OPERATORS,
    RANGE_OPERATORS,
    Connector,
    Operator,
)
from minerql.schema.values import BoundValue

_FROZEN = ConfigDict(extra="forbid", frozen=True)


def _check_family(node: Any, family: frozenset[Operator]) -> Any:
    if node.operator not in family:
        raise ValueError(
            f"A {node.kind} criterion cannot use the {node.operator.value!r} operator."
        )
    return node


# ---------------------------------------------------------------------------
# Criterion variants
# ---------------------------------------------------------------------------


class ComparisonCriterion(BaseModel):
    """``column <op> ?`` for ``=``, ``!=``, ``<``, ``LIKE``, ``REGEXP``, ..."""

    model_config = _FROZEN

    kind: Literal["comparison"] = "comparison"
    column: str
    operator: Operator = Operator.EQUALS
    value: BoundValue = None
    connector: Connector = Connector.AND

    @model_validator(mode="after")
    def _operator_family(self) -> ComparisonCriterion:
        return _check_family(self, COMPARISON_OPERATORS)


class RangeCriterion(BaseModel):
    """``column [NOT] BETWEEN ? AND ?``."""

    model_config = _FROZEN

    kind: Literal["range"] = "range"
    column: str
    operator: Operator = Operator.BETWEEN
    low: BoundValue
    high: BoundValue
    connector: Connector = Connector.AND

    @model_validator(mode="after")
    def _operator_family(self) -> RangeCriterion:
        return _check_family(self, RANGE_OPERATORS)


class MembershipCriterion(BaseModel):
    """``column [NOT] IN (?, ..., ?)``."""

    model_config = _FROZEN

    kind: Literal["membership"] = "membership"
    column: str
    operator: Operator = Operator.IN
    values: tuple[BoundValue, ...] = ()
    connector: Connector = Connector.AND

    @model_validator(mode="after")
    def _operator_family(self) -> MembershipCriterion:
        return _check_family(self, MEMBERSHIP_OPERATORS)


class KeywordCriterion(BaseModel):
    """``column IS [NOT] <keyword>``; the keyword is inlined, never bound."""

    model_config = _FROZEN

    kind: Literal["keyword"] = "keyword"
    column: str
    operator: Operator = Operator.IS
    keyword: Any = None
    connector: Connector = Connector.AND

    @model_validator(mode="after")
    def _operator_family(self) -> KeywordCriterion:
        return _check_family(self, KEYWORD_OPERATORS)


# ---------------------------------------------------------------------------
# Grouping markers
# ---------------------------------------------------------------------------


class OpenBracket(BaseModel):
    """Opens a parenthesised group, joined to what precedes it by ``connector``."""

    model_config = _FROZEN

    kind: Literal["open"] = "open"
    connector: Connector = Connector.AND


class CloseBracket(BaseModel):
    """Closes the innermost open group."""

    model_config = _FROZEN

    kind: Literal["close"] = "close"


Criterion = Union[ComparisonCriterion, RangeCriterion, MembershipCriterion, KeywordCriterion]

CriteriaNode = Annotated[
    Union[
        ComparisonCriterion,
        RangeCriterion,
        MembershipCriterion,
        KeywordCriterion,
        OpenBracket,
        CloseBracket,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _as_sequence(value: Any) -> tuple[Any, ...] | None:
    """Return ``value`` as a tuple, or ``None`` if it is a scalar.

    Strings and bytes are scalars here even though they are iterable.
    """
    if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Iterable):
        return None
    return tuple(value)


def make_criterion(
    column: str,
    value: Any,
    operator: Operator | str = Operator.EQUALS,
    connector: Connector | str = Connector.AND,
) -> Criterion:
    """Build the criterion variant that matches ``operator``.

    Args:
        column: Column name (escaped at render time, not here).
        value: Scalar, ``(low, high)`` pair, sequence, or IS keyword depending
            on the operator family.
        operator: Comparison operator; plain strings are coerced.
        connector: ``AND`` / ``OR`` joining this criterion to the previous one.

    Returns:
        A typed criterion node.

    Raises:
        CriteriaError: If the value shape does not fit the operator family.
        ValueError: If ``operator`` or ``connector`` is not recognised.
    """
    op = Operator(operator)
    conn = Connector(connector)

    if op in RANGE_OPERATORS:
        pair = _as_sequence(value)
        if pair is None or len(pair) != 2:
            raise CriteriaError(
                f"{op.value} on '{column}' expects a (low, high) pair, got {value!r}."
            )
        return RangeCriterion(column=column, operator=op, low=pair[0], high=pair[1], connector=conn)

    if op in MEMBERSHIP_OPERATORS:
        items = _as_sequence(value)
        if items is None:
            raise CriteriaError(
                f"{op.value} on '{column}' expects a sequence of values, got {value!r}."
            )
        return MembershipCriterion(column=column, operator=op, values=items, connector=conn)

    if op in KEYWORD_OPERATORS:
        return KeywordCriterion(column=column, operator=op, keyword=value, connector=conn)

    return ComparisonCriterion(column=column, operator=op, value=value, connector=conn)


# ---------------------------------------------------------------------------
# Ordered criteria sequence
# ---------------------------------------------------------------------------


class Criteria(BaseModel):
    """Ordered sequence of criteria and bracket markers for one clause.

    Attributes:
        nodes: Criteria and brackets in insertion order.
    """

    model_config = ConfigDict(extra="forbid")

    nodes: list[CriteriaNode] = Field(default_factory=list)

    def add(
        self,
        column: str,
        value: Any,
        operator: Operator | str = Operator.EQUALS,
        connector: Connector | str = Connector.AND,
    ) -> None:
        """Append a criterion built by :func:`make_criterion`."""
        self.nodes.append(make_criterion(column, value, operator, connector))

    def open(self, connector: Connector | str = Connector.AND) -> None:
        """Append an opening bracket."""
        self.nodes.append(OpenBracket(connector=Connector(connector)))

    def close(self) -> None:
        """Append a closing bracket."""
        self.nodes.append(CloseBracket())

    def merge_into(self, other: Criteria) -> Criteria:
        """Append deep copies of every node to ``other`` and return it."""
        nodes = [node.model_copy(deep=True) for node in self.nodes]
        other.nodes.extend(nodes)
        return other

    def is_balanced(self) -> bool:
        """Return ``True`` if every bracket is closed and none closes early."""
        depth = 0
        for node in self.nodes:
            if isinstance(node, OpenBracket):
                depth += 1
            elif isinstance(node, CloseBracket):
                depth -= 1
                if depth < 0:
                    return False
        return depth == 0

    def placeholder_count(self) -> int:
        """Number of ``?`` markers this sequence renders."""
        count = 0
        for node in self.nodes:
            if isinstance(node, ComparisonCriterion):
                count += 1
            elif isinstance(node, RangeCriterion):
                count += 2
            elif isinstance(node, MembershipCriterion):
                count += len(node.values)
        return count

    def __bool__(self) -> bool:
        return bool(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)
