"""
Pytest configuration for the data-access layer.

Provides fixtures for:
- Schema files written to a temporary schema directory
- A recording fake storage backend and a Registry wired to it
- Database connection management for integration tests
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Tuple

import psycopg
import pytest

from dataaccess.config import Settings
from dataaccess.model import Model
from dataaccess.query.slang import Query
from dataaccess.registry import Registry

REPO_SCHEMA_DIR = Path(__file__).parent.parent / "config" / "model"

USER_SCHEMA: Dict[str, Any] = {
    "primary": ["user_id"],
    "required": ["user_name"],
    "flag": {"active": 1, "admin": 2},
    "fields": {
        "user_id": {"type": "number_natural", "displayName": "ID"},
        "group_id": {"type": "number_natural"},
        "user_name": {"type": "text", "displayName": "Name"},
        "user_settings": {"type": "structure"},
        "user_birthday": {"type": "text_date"},
        "user_flag": {"type": "number_natural"},
        "user_created": {"type": "text_timestamp"},
        "user_modified": {"type": "text_timestamp"},
    },
}

GROUP_SCHEMA: Dict[str, Any] = {
    "primary": ["group_id"],
    "fields": {
        "group_id": {"type": "number_natural"},
        "group_name": {"type": "text", "required": True},
    },
}

ITEM_SCHEMA: Dict[str, Any] = {
    "primary": ["item_id"],
    "fields": {
        "item_id": {"type": "number_natural"},
        "item_name": {"type": "text"},
        "item_price": {"type": "number"},
        "item_count": {"type": "number_integer"},
        "item_port": {"type": "number_port"},
        "item_day": {"type": "text_date"},
        "item_released": {"type": "date"},
        "item_host": {"type": "text_domain"},
        "item_seen": {"type": "text_timestamp"},
        "item_file": {"type": "file"},
        "item_meta": {"type": "structure"},
        "item_public": {"type": "boolean"},
    },
}


class UserModel(Model):
    TABLE = "user"


class GroupModel(Model):
    TABLE = "group"


class ItemModel(Model):
    TABLE = "item"


class FakeBackend:
    """
    Storage backend double: records every statement and serves queued rows.

    Each read pops the next queued result; with nothing queued it returns no
    rows. Setting ``error`` makes every call raise it.
    """

    def __init__(self) -> None:
        self.reads: List[Tuple[str, Dict[str, Any]]] = []
        self.writes: List[Query] = []
        self.results: List[List[Dict[str, Any]]] = []
        self.error: Optional[Exception] = None

    def queue(self, *results: List[Dict[str, Any]]) -> None:
        self.results.extend([dict(row) for row in rows] for rows in results)

    def read(self, text: str, parameters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        self.reads.append((text, dict(parameters)))
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else []

    def write(self, query: Query) -> int:
        self.writes.append(query)
        if self.error is not None:
            raise self.error
        return 1


def write_schema(directory: Path, name: str, payload: Mapping[str, Any]) -> Path:
    path = directory / f"{name}.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "model"
    directory.mkdir()
    write_schema(directory, "public_user", USER_SCHEMA)
    write_schema(directory, "public_group", GROUP_SCHEMA)
    write_schema(directory, "public_item", ITEM_SCHEMA)
    return directory


@pytest.fixture
def settings(schema_dir: Path) -> Settings:
    return Settings(schema_dir=str(schema_dir), max_limit=10, cache_prefix="DA_")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def handled_errors() -> List[BaseException]:
    """Exceptions routed to the registry's error handler."""
    return []


@pytest.fixture
def registry(settings: Settings, backend: FakeBackend, handled_errors: List[BaseException]) -> Registry:
    return Registry(settings=settings, backends={"default": backend}, error_handler=handled_errors.append)


@pytest.fixture
def users(registry: Registry) -> UserModel:
    return registry.model(UserModel)


@pytest.fixture
def groups(registry: Registry) -> GroupModel:
    return registry.model(GroupModel)


@pytest.fixture
def items(registry: Registry) -> ItemModel:
    return registry.model(ItemModel)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "dataaccess"),
        schema_dir=str(REPO_SCHEMA_DIR),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except Exception:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_user_tables(db_connection: psycopg.Connection) -> Generator[None, None, None]:
    """
    Create the sample ``user``/``group`` tables and empty them around each test.
    """
    with db_connection.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS public."group" (
                group_id SERIAL PRIMARY KEY,
                group_name TEXT NOT NULL,
                group_created TIMESTAMP DEFAULT now()
            );
            CREATE TABLE IF NOT EXISTS public."user" (
                user_id SERIAL PRIMARY KEY,
                group_id INTEGER,
                user_name TEXT NOT NULL,
                user_settings JSONB,
                user_birthday DATE,
                user_flag INTEGER DEFAULT 0,
                user_created TIMESTAMP DEFAULT now(),
                user_modified TIMESTAMP DEFAULT now()
            );
            """
        )
        cur.execute('TRUNCATE TABLE public."user", public."group" RESTART IDENTITY CASCADE;')
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute('TRUNCATE TABLE public."user", public."group" RESTART IDENTITY CASCADE;')
    db_connection.commit()
