"""
Abstract interfaces for the collaborators a Model talks to.

Concrete storage backends (e.g. PostgreSQL via psycopg) implement the
StorageBackend protocol; cache stores implement CacheStore. Both are kept
structural (Protocol) so tests and applications can pass any object with the
right methods.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from dataaccess.query.slang import Query

Row = Dict[str, Any]


@runtime_checkable
class StorageBackend(Protocol):
    """
    Executes compiled statements.

    Statement text uses double-quoted identifiers and ``:name`` placeholders.
    """

    def read(self, text: str, parameters: Mapping[str, Any]) -> List[Row]:
        """
        Run a reading statement and return every row as a dict.

        Parameters
        ----------
        text : str
            Statement text with ``:name`` placeholders.
        parameters : Mapping[str, Any]
            Values bound to the placeholders.
        """
        ...

    def write(self, query: Query) -> int:
        """Run a writing statement and return the number of affected rows."""
        ...


@runtime_checkable
class CacheStore(Protocol):
    """Grouped key/value cache used for result and point lookups."""

    def get(self, group: str, key: str) -> Optional[Any]:
        ...

    def set(self, group: str, key: str, value: Any) -> None:
        ...

    def clear_key(self, group: str, key: str) -> None:
        ...


class AbstractStorageBackend(abc.ABC):
    """
    Optional ABC helper for class-based backends.
    """

    @abc.abstractmethod
    def read(self, text: str, parameters: Mapping[str, Any]) -> List[Row]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def write(self, query: Query) -> int:  # pragma: no cover - interface only
        raise NotImplementedError


__all__ = [
    "Row",
    "StorageBackend",
    "CacheStore",
    "AbstractStorageBackend",
]
