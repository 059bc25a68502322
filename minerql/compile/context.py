"""Compilation context value object.

Packages the ``(compiler, strict)`` pair shared by ``StatementCompiler`` and
all clause-level sub-builders into a single cohesive object.
"""
from __future__ import annotations

from dataclasses import dataclass

from minerql.compile.mysql import MySQLCompiler


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for a single compiler.

    Attributes:
        compiler: Dialect compiler (identifier quoting, placeholder text).
        strict: Validate bracket balance, empty IN lists, IS keywords and
            statement options instead of rendering them as given.
    """

    compiler: MySQLCompiler
    strict: bool = False
