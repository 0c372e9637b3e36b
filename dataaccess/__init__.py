"""
Schema-driven data-access layer for PostgreSQL.

Models are declared by table name; their columns, primary key, required
fields and flag bits come from JSON schema files. A Model accumulates filters,
orders, projection, pagination and joins, compiles them into a parameterized
statement and executes it through a storage backend:

- Entry wraps one row with per-field validation and change tracking
- EntryStack edits and saves a batch of Entries
- Registry owns per-session state (backends, caches, schemas, Entries)

Backend failures during execution are routed to the registry's error handler
and degrade to empty results; validation failures raise.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from dataaccess.config import Settings, get_settings
from dataaccess.domain.enums import Comparator, DataType, Direction, QueryKind
from dataaccess.entry import Entry, EntryStack
from dataaccess.errors import (
    ConfigurationError,
    DataAccessError,
    InvalidDataError,
    InvalidFieldValueError,
    QueryCompileError,
)
from dataaccess.model import Model
from dataaccess.query.slang import Query, Slang
from dataaccess.registry import Registry
from dataaccess.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Models
    "Model",
    "Entry",
    "EntryStack",
    "Registry",
    # Query compilation
    "Comparator",
    "DataType",
    "Direction",
    "Query",
    "QueryKind",
    "Slang",
    # Errors
    "DataAccessError",
    "ConfigurationError",
    "InvalidDataError",
    "InvalidFieldValueError",
    "QueryCompileError",
    # Logging
    "configure_logging",
    "get_logger",
]
