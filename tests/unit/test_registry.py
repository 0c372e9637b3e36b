from __future__ import annotations

import logging

from dataaccess.backends.memory import MemoryCacheStore
from dataaccess.backends.postgres import PostgresBackend
from dataaccess.registry import Registry


def test_unknown_connections_fall_back_to_default(registry, backend) -> None:
    assert registry.backend("reporting") is backend


def test_registered_backends_take_precedence(registry, backend) -> None:
    other = object()
    registry.register_backend("reporting", other)

    assert registry.backend("reporting") is other
    assert registry.backend() is backend


def test_postgres_backend_is_created_lazily(settings) -> None:
    registry = Registry(settings=settings)

    created = registry.backend()

    assert isinstance(created, PostgresBackend)
    assert registry.backend() is created


def test_default_cache_is_in_memory(registry) -> None:
    assert isinstance(registry.cache, MemoryCacheStore)


def test_model_for_generates_one_model_per_table(registry) -> None:
    model = registry.model_for("user")

    assert type(model).__name__ == "UserModel"
    assert model.TABLE == "user"
    assert model.SCHEMA == "public"
    assert registry.model_for("user") is model


def test_default_error_handler_logs(settings, caplog) -> None:
    registry = Registry(settings=settings)

    with caplog.at_level(logging.ERROR, logger="dataaccess.registry"):
        registry.handle_exception(RuntimeError("boom"))

    assert "Data-access operation failed" in caplog.text
    assert caplog.records[0].exc_info is not None


def test_memory_cache_store_isolates_values() -> None:
    cache = MemoryCacheStore()
    rows = [{"user_id": 1}]
    cache.set("group", "key", rows)
    rows[0]["user_id"] = 2

    cached = cache.get("group", "key")
    cached[0]["user_id"] = 3

    assert cache.get("group", "key") == [{"user_id": 1}]
    assert ("group", "key") in cache
    cache.clear_key("group", "key")
    assert cache.get("group", "key") is None
    cache.set("group", "other", 1)
    cache.clear_group("group")
    assert ("group", "other") not in cache
