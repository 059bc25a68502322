"""SQL identifier escaping.

Table and column names are never bound as placeholders, so they are the one
place user input reaches the SQL text.  Every identifier is therefore
validated against a deliberately narrow alphabet before it is quoted:

* only ASCII word characters ``[A-Za-z0-9_]``;
* must not begin with a digit;
* dotted paths (``schema.table.column``) are escaped segment by segment;
* the bare wildcard ``*`` passes through unquoted.

Examples:
    >>> escape_identifier("users")
    '`users`'
    >>> escape_identifier("users.id")
    '`users`.`id`'
    >>> escape_identifier("users.*")
    '`users`.*'
"""

from __future__ import annotations

import re

from minerql.errors import InvalidIdentifierError

WILDCARD = "*"

_WORD_SEGMENT = re.compile(r"[A-Za-z0-9_]+")
_LEADING_DIGIT = re.compile(r"[0-9]")


def escape_identifier(name: str, quote_left: str = "`", quote_right: str = "`") -> str:
    """Validate and quote a table or column name.

    Args:
        name: Identifier, optionally dotted, optionally already quoted.
        quote_left: Opening quote character.
        quote_right: Closing quote character.

    Returns:
        The quoted identifier.

    Raises:
        InvalidIdentifierError: If a segment contains anything but ASCII word
            characters, is empty, or starts with a digit.
    """
    if name == WILDCARD:
        return name

    # Strip quotes already present so "`users`" does not become "``users``".
    text = name.replace(quote_left, "").replace(quote_right, "")

    if "." in text:
        return ".".join(
            escape_identifier(segment, quote_left, quote_right) for segment in text.split(".")
        )

    if not _WORD_SEGMENT.fullmatch(text):
        raise InvalidIdentifierError(
            text, "Column/table must be made of ASCII letters, digits and underscores."
        )
    if _LEADING_DIGIT.match(text):
        raise InvalidIdentifierError(text, "Must begin with a letter or underscore.")

    return f"{quote_left}{text}{quote_right}"
