"""
Per-session owner of the state models share.

A Registry holds the settings, the storage backends keyed by connection name,
the cache store, the loaded schemas, the Entry map used by
``Model.load_entry`` and one Model instance per model class. Create one per
logical session and pass it to models explicitly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple, Type, TypeVar

from dataaccess.backends.abstract import CacheStore, StorageBackend
from dataaccess.backends.memory import MemoryCacheStore
from dataaccess.backends.postgres import PostgresBackend
from dataaccess.config import Settings, get_settings
from dataaccess.domain.models import SchemaDescriptor
from dataaccess.query.slang import Slang
from dataaccess.schema import SchemaLoader
from dataaccess.utils.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from dataaccess.entry import Entry
    from dataaccess.model import Model

log = get_logger(__name__)

M = TypeVar("M", bound="Model")

ErrorHandler = Callable[[BaseException], None]

DEFAULT_CONNECTION = "default"


def schema_cache_key(model_cls: type) -> str:
    return f"{model_cls.__module__}.{model_cls.__qualname__}"


class Registry:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        backends: Optional[Dict[str, StorageBackend]] = None,
        cache: Optional[CacheStore] = None,
        schema_loader: Optional[SchemaLoader] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache: CacheStore = cache if cache is not None else MemoryCacheStore()
        self.schema_loader = schema_loader or SchemaLoader(self.settings.schema_dir)
        self.slang = Slang()
        self.schemas: Dict[str, SchemaDescriptor] = {}
        self.entries: Dict[str, "Entry"] = {}
        self._backends: Dict[str, StorageBackend] = dict(backends or {})
        self._error_handler = error_handler
        self._models: Dict[type, "Model"] = {}
        self._table_models: Dict[Tuple[str, str], type] = {}

    # -- models --------------------------------------------------------------

    def model(self, model_cls: Type[M]) -> M:
        """Return the registry's instance of ``model_cls``, creating it on first use."""
        instance = self._models.get(model_cls)
        if instance is None:
            instance = model_cls(self)
            self._models[model_cls] = instance
        return instance  # type: ignore[return-value]

    def model_for(self, table: str, schema: str = "public") -> "Model":
        """
        Model instance for a table known only by name (used by the CLI).

        A Model subclass is generated once per ``(schema, table)``.
        """
        from dataaccess.model import Model

        key = (schema, table)
        model_cls = self._table_models.get(key)
        if model_cls is None:
            class_name = "".join(part.capitalize() for part in table.split("_")) + "Model"
            model_cls = type(class_name, (Model,), {"TABLE": table, "SCHEMA": schema})
            self._table_models[key] = model_cls
        return self.model(model_cls)

    def schema_for(self, model_cls: type) -> SchemaDescriptor:
        """Load and validate the schema of ``model_cls`` once per registry."""
        key = schema_cache_key(model_cls)
        descriptor = self.schemas.get(key)
        if descriptor is None:
            descriptor = self.schema_loader.load(model_cls.SCHEMA, model_cls.TABLE)
            self.schemas[key] = descriptor
        return descriptor

    # -- collaborators -------------------------------------------------------

    def backend(self, connection: str = DEFAULT_CONNECTION) -> StorageBackend:
        """
        Backend for ``connection``.

        Falls back to the ``default`` backend, then to a PostgresBackend built
        from settings.
        """
        backend = self._backends.get(connection) or self._backends.get(DEFAULT_CONNECTION)
        if backend is None:
            log.debug("Creating PostgresBackend from settings", extra={"connection": connection})
            backend = PostgresBackend.from_settings(self.settings)
            self._backends[connection] = backend
        return backend

    def register_backend(self, connection: str, backend: StorageBackend) -> None:
        self._backends[connection] = backend

    def handle_exception(self, exc: BaseException) -> None:
        """Route a swallowed failure to the configured handler, or log it."""
        if self._error_handler is not None:
            self._error_handler(exc)
            return
        log.error(
            "Data-access operation failed",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"error_type": type(exc).__name__},
        )


__all__ = ["DEFAULT_CONNECTION", "ErrorHandler", "Registry", "schema_cache_key"]
