"""Unit tests for structured logging."""
from __future__ import annotations

import json
import logging

from minerql import QueryBuilder, configure_logging, get_logger
from minerql import logging as minerql_logging


def test_compilation_logs_at_debug(debug_logs):
    QueryBuilder().select("a").from_("t").where("b", 1).get_statement()
    records = [r for r in debug_logs.records if "statement_compiled" in r.getMessage()]
    assert records
    assert records[-1].levelno == logging.DEBUG
    assert "verb='SELECT'" in records[-1].getMessage()
    assert "placeholders=1" in records[-1].getMessage()


def test_nothing_logged_above_debug(caplog):
    caplog.set_level(logging.INFO, logger="minerql")
    QueryBuilder().select("a").from_("t").get_statement()
    assert "statement_compiled" not in caplog.text


def test_json_rendering(debug_logs, monkeypatch):
    monkeypatch.setitem(minerql_logging._settings, "json", True)
    get_logger("minerql.test").debug("something_happened", rows=3)
    payload = json.loads(debug_logs.records[-1].getMessage())
    assert payload["event"] == "something_happened"
    assert payload["rows"] == 3
    assert payload["level"] == "debug"
    assert payload["logger"] == "minerql.test"


def test_configure_logging_sets_package_level(monkeypatch):
    monkeypatch.setitem(minerql_logging._settings, "json", False)
    package_logger = logging.getLogger("minerql")
    previous = package_logger.level
    try:
        configure_logging("warning", json=True)
        assert package_logger.level == logging.WARNING
        assert minerql_logging._settings["json"] is True
    finally:
        package_logger.setLevel(previous)
