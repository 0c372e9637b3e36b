"""
PostgreSQL storage backend built on psycopg.

Compiled statements use ``:name`` placeholders; psycopg expects the pyformat
style ``%(name)s``. :func:`to_pyformat` rewrites placeholders outside quoted
literals/identifiers and escapes every other ``%`` so LIKE masks and list
literals survive parameter interpolation.
"""

from __future__ import annotations

import re
from typing import Any, Callable, List, Mapping, Optional

from psycopg import Connection
from psycopg.rows import dict_row

from dataaccess.backends.abstract import AbstractStorageBackend, Row
from dataaccess.config import Settings, get_settings
from dataaccess.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    get_sync_connection,
)
from dataaccess.query.slang import Query
from dataaccess.utils.logging import get_logger

log = get_logger(__name__)

_PLACEHOLDER = re.compile(r":([A-Za-z_]\w*)")


def to_pyformat(text: str) -> str:
    """
    Convert ``:name`` placeholders to ``%(name)s``.

    Placeholders inside quoted literals or identifiers are left alone, as are
    ``::type`` casts; literal ``%`` characters are doubled.
    """
    out: List[str] = []
    quote: Optional[str] = None
    i, length = 0, len(text)
    while i < length:
        char = text[i]
        if char == "%":
            out.append("%%")
            i += 1
            continue
        if quote is not None:
            if char == quote:
                quote = None
            out.append(char)
            i += 1
            continue
        if char in ("'", '"'):
            quote = char
            out.append(char)
            i += 1
            continue
        if char == ":":
            if text.startswith("::", i):
                out.append("::")
                i += 2
                continue
            match = _PLACEHOLDER.match(text, i)
            if match:
                out.append(f"%({match.group(1)})s")
                i = match.end()
                continue
        out.append(char)
        i += 1
    return "".join(out)


class PostgresBackend(AbstractStorageBackend):
    """
    Runs statements on a dedicated psycopg connection per call.

    Reads return rows as dicts (``dict_row``); writes are committed and return
    the affected row count. Any driver error propagates to the caller.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        statement_timeout_ms: int = 0,
        connect: Callable[[Optional[str]], Connection] = get_sync_connection,
    ) -> None:
        self._dsn = dsn
        self._statement_timeout_ms = statement_timeout_ms
        self._connect = connect

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PostgresBackend":
        settings = settings or get_settings()
        return cls(
            dsn=build_dsn(settings),
            statement_timeout_ms=settings.db_statement_timeout_ms,
        )

    def read(self, text: str, parameters: Mapping[str, Any]) -> List[Row]:
        log.debug("Executing read", extra={"sql": text})
        conn = self._connect(self._dsn)
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self._statement_timeout_ms)
                cur.execute(to_pyformat(text), dict(parameters))
                return list(cur.fetchall())
        finally:
            conn.close()

    def write(self, query: Query) -> int:
        log.debug("Executing write", extra={"sql": query.text, "kind": query.kind.value})
        conn = self._connect(self._dsn)
        try:
            with conn.cursor() as cur:
                apply_statement_timeout(cur, self._statement_timeout_ms)
                cur.execute(to_pyformat(query.text), dict(query.parameters))
                affected = cur.rowcount
            conn.commit()
            return affected
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


__all__ = ["PostgresBackend", "to_pyformat"]
