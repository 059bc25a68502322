"""MySQL dialect compiler."""

from __future__ import annotations

from minerql.compile.identifier import escape_identifier


class MySQLCompiler:
    """Dialect hooks used by every clause builder.

    Parameter style: positional ``?``, compatible with any DB-API driver
    using the ``qmark`` paramstyle, and with :class:`minerql.db.Database`,
    which rewrites ``?`` for ``format``-style drivers such as ``PyMySQL``.

    Identifiers are quoted with backticks (`` ` ``) after validation; see
    :func:`~minerql.compile.identifier.escape_identifier`.
    """

    QUOTE_LEFT = "`"
    QUOTE_RIGHT = "`"
    PLACEHOLDER = "?"

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def param_placeholder(self) -> str:
        return self.PLACEHOLDER

    def quote_identifier(self, name: str) -> str:
        return escape_identifier(name, self.QUOTE_LEFT, self.QUOTE_RIGHT)
