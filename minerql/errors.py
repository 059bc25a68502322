"""Custom exception hierarchy for minerql.

All public errors inherit from MinerQLError so callers can catch the base
class for any minerql-specific failure.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class MinerQLError(Exception):
    """Base exception for all minerql errors."""


class InvalidIdentifierError(MinerQLError):
    """Raised when a table or column name cannot be safely escaped.

    Args:
        identifier: The offending identifier segment.
        reason: Why the identifier was rejected.
    """

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f'Invalid identifier "{identifier}": {reason}')
        self.identifier = identifier
        self.reason = reason


class CriteriaError(MinerQLError):
    """Raised when a WHERE / HAVING criterion has the wrong shape.

    Also raised for every strict-mode violation (unbalanced brackets, empty
    IN lists, unknown IS keywords, unknown statement options).

    Args:
        message: Human-readable description.
        clause: The clause being built when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause


class CompilationError(MinerQLError):
    """Raised when SQL compilation fails for an unexpected reason.

    Args:
        message: Human-readable description.
        clause: The statement clause being compiled when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause


class DatabaseError(MinerQLError):
    """Raised when the database rejects a statement.

    Args:
        message: Driver error message.
        sql: The statement that failed.
        values: The positional values bound to the statement.
        code: Driver error code or SQLSTATE, when the driver exposes one.
    """

    def __init__(
        self,
        message: str,
        sql: str = "",
        values: Sequence[Any] = (),
        code: Any = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.values: list[Any] = list(values)
        self.code = code

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured description suitable for logs or API replies."""
        return {
            "error": "DATABASE_ERROR",
            "message": str(self),
            "code": self.code,
            "sql": self.sql,
        }


class ParseError(MinerQLError):
    """Raised when a serialized statement cannot be parsed.

    Args:
        message: Human-readable description.
        raw: The raw input that failed to parse.
    """

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw
