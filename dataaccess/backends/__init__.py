"""
Backends package for the data-access layer.

Re-exports the collaborator interfaces and their concrete implementations so
downstream code can import from `dataaccess.backends` directly.
"""

from dataaccess.backends.abstract import (
    AbstractStorageBackend,
    CacheStore,
    Row,
    StorageBackend,
)
from dataaccess.backends.memory import MemoryCacheStore
from dataaccess.backends.postgres import PostgresBackend, to_pyformat

__all__ = [
    # Abstracts
    "AbstractStorageBackend",
    "CacheStore",
    "Row",
    "StorageBackend",
    # Concrete backends
    "MemoryCacheStore",
    "PostgresBackend",
    "to_pyformat",
]
