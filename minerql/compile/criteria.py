"""Criteria SQL compiler for WHERE and HAVING.

``CriteriaBuilder`` renders a :class:`~minerql.schema.criteria.Criteria`
sequence to SQL text and pushes every bound value into a
:class:`PlaceholderAccumulator` in exactly the order its ``?`` appears in the
text.  The same builder serves both WHERE and HAVING; only the ``clause``
label used in error messages differs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from minerql.compile.context import CompilationContext
from minerql.errors import CompilationError, CriteriaError
from minerql.schema.criteria import (
    CloseBracket,
    ComparisonCriterion,
    Criteria,
    KeywordCriterion,
    MembershipCriterion,
    OpenBracket,
    RangeCriterion,
)
from minerql.schema.expressions import STRICT_KEYWORDS, Connector

# ---------------------------------------------------------------------------
# Placeholder accumulator (shared across all sub-builders in one run)
# ---------------------------------------------------------------------------


@dataclass
class PlaceholderAccumulator:
    """Collects positional values during a single compilation run.

    A fresh instance is created per compilation so that rendering is
    repeatable: nothing carries over between calls.
    """

    placeholder: str = "?"
    values: list[Any] = field(default_factory=list)

    def add(self, value: Any) -> str:
        """Store a value and return the placeholder text for it."""
        self.values.append(value)
        return self.placeholder


# ---------------------------------------------------------------------------
# Criteria builder
# ---------------------------------------------------------------------------


class CriteriaBuilder:
    """Compiles WHERE / HAVING criteria sequences to SQL.

    Args:
        ctx: Static compilation context.
        runtime: Placeholder accumulator for this run.
        clause: ``"WHERE"`` or ``"HAVING"``; used in error messages.
    """

    def __init__(
        self,
        ctx: CompilationContext,
        runtime: PlaceholderAccumulator,
        clause: str = "WHERE",
    ) -> None:
        self._ctx = ctx
        self._runtime = runtime
        self._clause = clause

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, criteria: Criteria) -> str:
        """Compile ``criteria`` to a SQL fragment without the clause keyword."""
        if self._ctx.strict and not criteria.is_balanced():
            raise CriteriaError(
                f"Unbalanced brackets in {self._clause} clause.", clause=self._clause
            )

        parts: list[str] = []
        needs_connector = False
        for node in criteria.nodes:
            if isinstance(node, OpenBracket):
                if needs_connector:
                    parts.append(self._connector(node.connector))
                parts.append("(")
                needs_connector = False
            elif isinstance(node, CloseBracket):
                parts.append(")")
                needs_connector = True
            else:
                if needs_connector:
                    parts.append(self._connector(node.connector))
                needs_connector = True
                parts.append(self._build_criterion(node))
        return "".join(parts)

    # ------------------------------------------------------------------
    # Criterion sub-compilers
    # ------------------------------------------------------------------

    @staticmethod
    def _connector(connector: Connector) -> str:
        return f" {connector.value} "

    def _build_criterion(self, node: Any) -> str:
        if not isinstance(
            node, (ComparisonCriterion, RangeCriterion, MembershipCriterion, KeywordCriterion)
        ):
            raise CompilationError(
                f"Unknown criteria node: {type(node).__name__}", clause=self._clause
            )

        column = self._ctx.compiler.quote_identifier(node.column)
        operator = node.operator.value

        if isinstance(node, ComparisonCriterion):
            return f"{column} {operator} {self._runtime.add(node.value)}"

        if isinstance(node, RangeCriterion):
            low = self._runtime.add(node.low)
            high = self._runtime.add(node.high)
            return f"{column} {operator} {low} AND {high}"

        if isinstance(node, MembershipCriterion):
            if self._ctx.strict and not node.values:
                raise CriteriaError(
                    f"{operator} on '{node.column}' has an empty value list.",
                    clause=self._clause,
                )
            markers = ", ".join(self._runtime.add(v) for v in node.values)
            return f"{column} {operator} ({markers})"

        return f"{column} {operator} {self._keyword(node)}"

    def _keyword(self, node: KeywordCriterion) -> str:
        """Render the inline right-hand side of IS / IS NOT."""
        keyword = node.keyword
        if keyword is None:
            text = "NULL"
        elif isinstance(keyword, bool):
            text = "TRUE" if keyword else "FALSE"
        else:
            text = " ".join(str(keyword).split()).upper()

        if self._ctx.strict and text not in STRICT_KEYWORDS:
            raise CriteriaError(
                f"{node.operator.value} on '{node.column}' must be followed by one of "
                f"{sorted(STRICT_KEYWORDS)}, got {keyword!r}.",
                clause=self._clause,
            )
        return text
