"""Bound-value type that survives a JSON round-trip.

Placeholder values are typed ``Any`` so a builder can bind whatever the
driver accepts.  JSON has no date, decimal or binary type, so when a
statement is saved with ``model_dump_json()`` those values are written as a
tagged object and restored to their Python type on validation::

    {"$type": "date", "value": "2024-01-02"}

JSON-native values (strings, numbers, booleans, ``None``) are written as-is.
Python-mode dumps (``model_dump()``) keep the original objects untouched.
"""
from __future__ import annotations

import base64
from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Callable
from uuid import UUID

from pydantic import BeforeValidator, WrapSerializer

TYPE_KEY = "$type"

# (tag, type, encode, decode); datetime must precede its base class date.
_CODECS: tuple[tuple[str, type, Callable[[Any], Any], Callable[[Any], Any]], ...] = (
    ("datetime", datetime, datetime.isoformat, datetime.fromisoformat),
    ("date", date, date.isoformat, date.fromisoformat),
    ("time", time, time.isoformat, time.fromisoformat),
    ("decimal", Decimal, str, Decimal),
    ("uuid", UUID, str, UUID),
    ("bytes", bytes, lambda v: base64.b64encode(v).decode("ascii"), base64.b64decode),
)
_DECODERS = {tag: decode for tag, _, _, decode in _CODECS}


def _tag(value: Any, handler: Any) -> Any:
    for tag, kind, encode, _ in _CODECS:
        if isinstance(value, kind):
            return {TYPE_KEY: tag, "value": encode(value)}
    return handler(value)


def _restore(value: Any) -> Any:
    if (
        isinstance(value, dict)
        and set(value) == {TYPE_KEY, "value"}
        and value[TYPE_KEY] in _DECODERS
    ):
        return _DECODERS[value[TYPE_KEY]](value["value"])
    return value


#: A value bound to one ``?`` placeholder.
BoundValue = Annotated[Any, BeforeValidator(_restore), WrapSerializer(_tag, when_used="json")]
