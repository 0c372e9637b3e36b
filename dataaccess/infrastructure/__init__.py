"""
Infrastructure package for the data-access layer.

Centralizes database connectivity concerns (DSN, connection factory, session
settings). Keep this layer focused on I/O and resource management, decoupled
from query compilation and model logic.
"""

from dataaccess.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    get_sync_connection,
)

__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
]
