"""
Database connection factory utilities for the data-access layer.

Provides DSN composition and synchronous PostgreSQL connections with retry
logic for transient connection failures (tenacity). Every statement runs on a
dedicated connection; pooling is left to the deployment (e.g. pgbouncer).
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection, Cursor
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dataaccess.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the one built from settings.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def apply_statement_timeout(cursor: Cursor, timeout_ms: int) -> None:
    """
    Bound the runtime of the following statements on this cursor's session.

    A non-positive timeout leaves the server default in place.
    """
    if timeout_ms <= 0:
        return
    cursor.execute(f"SET statement_timeout = {int(timeout_ms)}")


__all__ = [
    "build_dsn",
    "get_sync_connection",
    "apply_statement_timeout",
]
