"""Operator, connector, join and ordering enums plus operator families.

The operator family decides how a criterion renders its value fragment and
how many placeholders it contributes:

========== ============================= ============ ================
family     operators                     fragment     placeholders
========== ============================= ============ ================
comparison ``=``, ``!=``, ``LIKE``, ...  ``?``        1
range      ``BETWEEN``, ``NOT BETWEEN``  ``? AND ?``  2
membership ``IN``, ``NOT IN``            ``(?, ?)``   one per element
keyword    ``IS``, ``IS NOT``            literal      0
========== ============================= ============ ================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Operator(str, Enum):
    """Comparison operators accepted by WHERE / HAVING criteria."""

    EQUALS = "="
    NOT_EQUALS = "!="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    ILIKE = "ILIKE"
    REGEXP = "REGEXP"
    NOT_REGEXP = "NOT REGEXP"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT BETWEEN"
    IS = "IS"
    IS_NOT = "IS NOT"

    @classmethod
    def _missing_(cls, value: Any) -> Operator | None:
        # Accept "not in", "  like " and friends.
        if isinstance(value, str):
            normalized = " ".join(value.split()).upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class Connector(str, Enum):
    """Logical connectives between consecutive criteria."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def _missing_(cls, value: Any) -> Connector | None:
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class JoinType(str, Enum):
    """Supported JOIN types, rendered verbatim before the joined table."""

    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"

    @classmethod
    def _missing_(cls, value: Any) -> JoinType | None:
        # "left", "LEFT JOIN" and "left join" all resolve to LEFT.
        if isinstance(value, str):
            normalized = " ".join(value.split()).upper()
            for member in cls:
                if normalized in (member.value, member.name):
                    return member
        return None


class OrderDirection(str, Enum):
    """Sort direction for ORDER BY (and MySQL's legacy GROUP BY ordering)."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def _missing_(cls, value: Any) -> OrderDirection | None:
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# ---------------------------------------------------------------------------
# Operator families
# ---------------------------------------------------------------------------

#: Operators rendered as ``? AND ?`` with a (low, high) pair.
RANGE_OPERATORS: frozenset[Operator] = frozenset({Operator.BETWEEN, Operator.NOT_BETWEEN})

#: Operators rendered as ``(?, ..., ?)`` with one placeholder per element.
MEMBERSHIP_OPERATORS: frozenset[Operator] = frozenset({Operator.IN, Operator.NOT_IN})

#: Operators whose right-hand side is an inline keyword (no placeholder).
KEYWORD_OPERATORS: frozenset[Operator] = frozenset({Operator.IS, Operator.IS_NOT})

#: Everything else: a single ``?`` placeholder.
COMPARISON_OPERATORS: frozenset[Operator] = (
    frozenset(Operator) - RANGE_OPERATORS - MEMBERSHIP_OPERATORS - KEYWORD_OPERATORS
)

#: Keywords accepted after IS / IS NOT in strict mode.
STRICT_KEYWORDS: frozenset[str] = frozenset({"NULL", "NOT NULL", "TRUE", "FALSE", "UNKNOWN"})

#: Statement options accepted in strict mode (MySQL modifiers).
KNOWN_OPTIONS: frozenset[str] = frozenset(
    {
        "ALL",
        "DELAYED",
        "DISTINCT",
        "DISTINCTROW",
        "HIGH_PRIORITY",
        "IGNORE",
        "LOW_PRIORITY",
        "QUICK",
        "SQL_BIG_RESULT",
        "SQL_BUFFER_RESULT",
        "SQL_CALC_FOUND_ROWS",
        "SQL_NO_CACHE",
        "SQL_SMALL_RESULT",
        "STRAIGHT_JOIN",
    }
)
