"""
Integration tests for models against a real PostgreSQL instance.

These tests use the sample schemas in ``config/model`` and verify that:
1. Inserted rows can be searched, loaded and normalized back
2. Entries persist their changes through updates
3. Deletes by key and by filter remove rows

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from dataaccess.backends.postgres import PostgresBackend
from dataaccess.infrastructure.db_factory import build_dsn
from dataaccess.model import Model
from dataaccess.registry import Registry

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


class UserModel(Model):
    TABLE = "user"


class GroupModel(Model):
    TABLE = "group"


@pytest.fixture
def live_registry(test_settings, clean_user_tables, handled_errors) -> Registry:
    backend = PostgresBackend(dsn=build_dsn(test_settings), statement_timeout_ms=5_000)
    return Registry(settings=test_settings, backends={"default": backend}, error_handler=handled_errors.append)


class TestRoundTrip:
    """Insert, read, update and delete through the Model API."""

    def test_insert_then_search_normalizes_rows(self, live_registry, handled_errors):
        users = live_registry.model(UserModel)

        users.save({"user_name": "jo", "user_settings": {"theme": "dark", "tags": [1, 2]}, "user_flag": 3})
        users.add_filter("user_name", "j", "begins")
        rows = users.search()

        assert handled_errors == []
        assert len(rows) == 1
        assert rows[0]["user_settings"] == {"theme": "dark", "tags": [1, 2]}
        assert users.is_flag(2, rows[0])

    def test_entry_update_is_persisted(self, live_registry):
        users = live_registry.model(UserModel)
        users.save({"user_name": "jo"})
        user_id = users.load_by_unique("user_name", "jo")["user_id"]

        entry = users.load_entry(user_id)
        entry.set("user_name", "bob")
        entry.save()

        assert users.load(user_id)["user_name"] == "bob"

    def test_join_filters_on_the_joined_table(self, live_registry):
        users = live_registry.model(UserModel)
        groups = live_registry.model(GroupModel)
        groups.save({"group_name": "admins"})
        group_id = groups.load_by_unique("group_name", "admins")["group_id"]
        users.save({"user_name": "jo", "group_id": group_id})
        users.save({"user_name": "al"})

        groups.add_filter("group_name", "admins")
        users.add_model(groups)
        rows = users.search()

        assert [row["user_name"] for row in rows] == ["jo"]

    def test_delete_by_filter_and_key(self, live_registry):
        users = live_registry.model(UserModel)
        for name in ("jo", "joe", "al"):
            users.save({"user_name": name})

        users.add_filter("user_name", "jo", "begins")
        users.delete()
        remaining = users.search()

        assert [row["user_name"] for row in remaining] == ["al"]
        users.delete(remaining[0]["user_id"])
        assert users.count() == 0
