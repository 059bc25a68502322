"""Shared pytest fixtures for minerql unit and integration tests."""
from __future__ import annotations

import logging

import pytest

from minerql import QueryBuilder


@pytest.fixture()
def qb() -> QueryBuilder:
    """A fresh, non-strict builder."""
    return QueryBuilder()


@pytest.fixture()
def strict_qb() -> QueryBuilder:
    return QueryBuilder(strict=True)


@pytest.fixture()
def debug_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Capture minerql log events down to DEBUG."""
    caplog.set_level(logging.DEBUG, logger="minerql")
    return caplog
