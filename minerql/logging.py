"""Structured logging for minerql, built on structlog.

Loggers returned by :func:`get_logger` wrap the standard library logger of
the same name, so level filtering, handlers and pytest's ``caplog`` work as
usual.  Importing minerql never configures logging; applications that want
minerql's output call :func:`configure_logging` once at start-up.

Usage:
    >>> from minerql.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug("statement_compiled", verb="SELECT", placeholders=2)
"""
from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog
from structlog.types import EventDict, Processor

_KEY_VALUE_RENDERER = structlog.processors.KeyValueRenderer(
    key_order=["timestamp", "level", "logger", "event"], drop_missing=True
)
_JSON_RENDERER = structlog.processors.JSONRenderer()

_settings: dict[str, bool] = {"json": False}


def _render(logger: logging.Logger, method_name: str, event_dict: EventDict) -> str:
    renderer = _JSON_RENDERER if _settings["json"] else _KEY_VALUE_RENDERER
    return renderer(logger, method_name, event_dict)


def _drop_none(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> MutableMapping[str, Any]:
    return {key: value for key, value in event_dict.items() if value is not None}


_PROCESSORS: list[Processor] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    _drop_none,
    structlog.processors.format_exc_info,
    _render,
]


def configure_logging(level: int | str = "INFO", json: bool = False) -> None:
    """Send minerql log events to stderr.

    Args:
        level: Level for the ``minerql`` logger hierarchy.
        json: Render events as JSON lines instead of ``key=value`` pairs.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s")
    logging.getLogger("minerql").setLevel(level)
    _settings["json"] = json


def get_logger(name: str) -> Any:
    """Return a structlog BoundLogger over the stdlib logger ``name``.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )
