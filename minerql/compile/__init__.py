"""minerql compilation layer: StatementState → parameterized SQL."""
from minerql.compile.builder import CompiledStatement, StatementCompiler
from minerql.compile.identifier import escape_identifier
from minerql.compile.mysql import MySQLCompiler

__all__ = [
    "CompiledStatement",
    "StatementCompiler",
    "escape_identifier",
    "MySQLCompiler",
]
