"""Executor configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DatabaseConfig(BaseModel):
    """Settings for :class:`~minerql.db.database.Database`.

    Attributes:
        charset: Connection character set, applied with ``SET NAMES`` when
            the connection is opened (MySQL only).  ``None`` leaves the
            driver default.
        deadlock_retries: How many times a statement that failed with a
            deadlock or serialization error is re-run.  Statements inside an
            explicit transaction are never retried.
        deadlock_backoff: Seconds to sleep before retry ``n`` is
            ``n * deadlock_backoff``.
        echo: Passed to :func:`sqlalchemy.create_engine` by
            :meth:`Database.from_url`.
    """

    model_config = ConfigDict(extra="forbid")

    charset: str | None = Field(None, pattern=r"^\w+$")
    deadlock_retries: int = Field(3, ge=0)
    deadlock_backoff: float = Field(1.0, ge=0)
    echo: bool = False
