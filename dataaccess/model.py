"""
Schema-driven Model: accumulates query intent, executes it through the
registry's backend and maps rows to and from Entries.

Every Model subclass names its table; the column definitions come from the
schema file ``<schema_dir>/<SCHEMA>_<TABLE>.json``:

    class UserModel(Model):
        TABLE = "user"

    users = registry.model(UserModel)
    users.add_filter("user_name", "jo", "begins")
    users.add_order("user_name")
    users.set_limit(5)
    rows = users.search()

Query state lives on the instance until the next statement is executed, after
which the model is reset. A model and every model joined into it are one
unit of state.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, List, Mapping, Optional, Union

from dataaccess.domain.enums import Comparator, DataType, QueryKind
from dataaccess.domain.models import FieldDefinition, SchemaDescriptor
from dataaccess.entry import Entry
from dataaccess.errors import (
    ConfigurationError,
    InvalidDataError,
    InvalidFieldValueError,
    QueryCompileError,
)
from dataaccess.query.plugins import Field, Filter, Limit, Offset, Order
from dataaccess.query.slang import Query, Slang
from dataaccess.utils.logging import get_logger
from dataaccess.utils.values import is_empty
from dataaccess.validators import OPTION_NULL_ALLOWED, get_validator

if TYPE_CHECKING:  # pragma: no cover
    from dataaccess.backends.abstract import Row
    from dataaccess.registry import Registry

log = get_logger(__name__)

FIELD_IS_REQUIRED = "FIELD_IS_REQUIRED"
PRIMARY_CACHE_PREFIX = "PRIMARY_"
RESULT_CACHE_PREFIX = "manualcache"


def _decode_structure(value: Any) -> Any:
    if not isinstance(value, (str, bytes, bytearray)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Any:
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


def _to_int(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _unchanged(value: Any) -> Any:
    return value


# Read-side conversion of stored values, one entry per DataType.
_NORMALIZERS: Dict[DataType, Callable[[Any], Any]] = {
    DataType.TEXT: _unchanged,
    DataType.NUMBER: _to_float,
    DataType.NUMBER_NATURAL: _to_int,
    DataType.NUMBER_INTEGER: _to_int,
    DataType.NUMBER_PORT: _to_int,
    DataType.DATE: _unchanged,
    DataType.TEXT_DATE: _unchanged,
    DataType.TEXT_DOMAIN: _unchanged,
    DataType.DATE_TIME: _unchanged,
    DataType.FILE: _unchanged,
    DataType.STRUCTURE: _decode_structure,
    DataType.BOOLEAN: _unchanged,
}


def _import_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return {"true": True, "false": False}.get(value.strip().lower())
    return None


def _import_date(value: Any) -> Any:
    if not isinstance(value, str) or not value:
        return value
    try:
        return datetime.strptime(value, "%d.%m.%Y").strftime("%Y-%m-%d")
    except ValueError:
        return value


# Write-side conversion of human input, one entry per DataType.
_IMPORTERS: Dict[DataType, Callable[[Any], Any]] = {
    DataType.TEXT: _unchanged,
    DataType.NUMBER: _unchanged,
    DataType.NUMBER_NATURAL: _to_int,
    DataType.NUMBER_INTEGER: _unchanged,
    DataType.NUMBER_PORT: _unchanged,
    DataType.DATE: _import_date,
    DataType.TEXT_DATE: _import_date,
    DataType.TEXT_DOMAIN: _unchanged,
    DataType.DATE_TIME: _unchanged,
    DataType.FILE: _unchanged,
    DataType.STRUCTURE: _unchanged,
    DataType.BOOLEAN: _import_boolean,
}


class Model:
    """
    Base class for table models.

    Parameters
    ----------
    registry : Registry
        Session state: backends, caches, schemas and the Entry map.

    Raises
    ------
    ConfigurationError
        When ``TABLE`` is missing or the schema file cannot be loaded.
    """

    TABLE: ClassVar[str] = ""
    SCHEMA: ClassVar[str] = "public"

    FIELDSUFFIX_CREATED: ClassVar[str] = "_created"
    FIELDSUFFIX_MODIFIED: ClassVar[str] = "_modified"
    FIELDSUFFIX_FLAG: ClassVar[str] = "_flag"

    def __init__(self, registry: "Registry") -> None:
        if not self.TABLE:
            raise ConfigurationError(
                f"{type(self).__name__} does not declare a TABLE",
                code="EXCEPTION_MODEL_TABLE_MISSING",
                context={"model": type(self).__name__},
            )
        self.registry = registry
        self.schema: SchemaDescriptor = registry.schema_for(type(self))
        self.last_error: Optional[BaseException] = None
        self._slang: Slang = registry.slang
        self._definitions: Dict[str, FieldDefinition] = {}
        self._models: List[Model] = []
        self._filters: List[Filter] = []
        self._orders: List[Order] = []
        self._fields: List[Field] = []
        self._limit: Optional[Limit] = None
        self._offset: Optional[Offset] = None
        self._cache = False
        self._join_alias: Optional[str] = None
        self._result: List["Row"] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table={self.TABLE!r}, connection={self.connection_name!r})"

    # -- schema --------------------------------------------------------------

    @property
    def primary_key(self) -> str:
        return self.schema.primary[0]

    @property
    def field_names(self) -> List[str]:
        return list(self.schema.fields)

    @property
    def connection_name(self) -> str:
        return self.schema.connection

    @property
    def flag_field(self) -> str:
        return f"{self.TABLE}{self.FIELDSUFFIX_FLAG}"

    @property
    def model_name(self) -> str:
        return type(self).__name__.replace("Model", "")

    @property
    def max_limit(self) -> int:
        return self.registry.settings.max_limit

    @property
    def cache_group(self) -> str:
        qualified = f"{type(self).__module__}.{type(self).__qualname__}".replace(".", "_")
        return (
            f"{self.registry.settings.cache_prefix}MODELDATA_{self.connection_name}_{qualified}"
        ).upper()

    def field_exists(self, name: str) -> bool:
        return name in self.schema.fields

    def field_type(self, name: str) -> str:
        """DataType name of ``name``; empty string for unknown fields."""
        field = self.schema.fields.get(name)
        return field.type if field is not None else ""

    def definition(self, name: str) -> FieldDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            field = self.schema.fields.get(name)
            if field is None:
                raise KeyError(f"Field '{name}' is not defined on {self.TABLE}")
            definition = FieldDefinition.from_schema(name, field, self.primary_key)
            self._definitions[name] = definition
        return definition

    def definitions(self) -> Dict[str, FieldDefinition]:
        return {name: self.definition(name) for name in self.schema.fields}

    def is_required(self, name: str) -> bool:
        return self.definition(name).required or name in self.schema.required

    def protected_fields(self) -> List[str]:
        """Primary key and audit fields; never written by insert or update."""
        return [
            self.primary_key,
            f"{self.TABLE}{self.FIELDSUFFIX_CREATED}",
            f"{self.TABLE}{self.FIELDSUFFIX_MODIFIED}",
        ]

    # -- accumulation --------------------------------------------------------

    def add_filter(
        self,
        field_name: str,
        value: Any = None,
        operator: Union[Comparator, str, None] = None,
    ) -> None:
        if isinstance(value, (list, tuple)) and not value:
            return
        if not self.field_exists(field_name):
            log.warning(
                "Ignoring filter on unknown field",
                extra={"table": self.TABLE, "field_name": field_name},
            )
            return
        comparator = Comparator.EQUALS
        if operator is not None:
            comparator = Comparator.normalize(operator)
            if comparator is None:
                log.warning(
                    "Unknown comparator, falling back to equals",
                    extra={"table": self.TABLE, "field_name": field_name, "operator": str(operator)},
                )
                comparator = Comparator.EQUALS
        flt = Filter.create(field_name, self.field_type(field_name), comparator, value)
        if not flt.accepts(comparator):
            log.warning(
                "Comparator is not meant for this field type",
                extra={
                    "table": self.TABLE,
                    "field_name": field_name,
                    "operator": comparator.value,
                    "filter": type(flt).__name__,
                },
            )
        self._filters.append(flt)

    def add_order(self, field_name: str, direction: Optional[str] = None) -> None:
        self._orders.append(Order.create(field_name, direction))

    def set_limit(self, limit: int) -> None:
        self._limit = Limit(limit, self.max_limit)

    def set_offset(self, offset: int) -> None:
        self._offset = Offset(offset)

    def add_field(self, field_name: str) -> None:
        """Project ``field_name``; a comma separated list adds several fields."""
        if "," in field_name:
            for name in field_name.split(","):
                self.add_field(name.strip())
            return
        if not self.field_exists(field_name):
            log.debug("Dropping unknown projection field", extra={"table": self.TABLE, "field_name": field_name})
            return
        self._fields.append(Field(field_name))

    def add_model(self, model: "Model", alias: Optional[str] = None) -> None:
        """Join ``model`` on its primary key; its filters and orders apply too."""
        model._join_alias = alias
        self._models.append(model)

    def use_cache(self, flag: bool = True) -> None:
        self._cache = flag

    def reset(self) -> None:
        """Drop all accumulated state, including that of joined models."""
        joined, self._models = self._models, []
        self._filters = []
        self._orders = []
        self._fields = []
        self._limit = None
        self._offset = None
        self._cache = False
        self._join_alias = None
        for model in joined:
            model.reset()

    # -- accessors used by the compiler ---------------------------------------

    def get_table(self) -> str:
        """Name this model is addressed by inside a statement: its alias or table."""
        return self._join_alias or self.TABLE

    def get_join_alias(self) -> Optional[str]:
        return self._join_alias

    def get_filters(self) -> List[Filter]:
        return list(self._filters)

    def get_orders(self) -> List[Order]:
        return list(self._orders)

    def get_select_fields(self) -> List[Field]:
        return list(self._fields)

    def get_limit(self) -> Optional[Limit]:
        return self._limit

    def get_offset(self) -> Optional[Offset]:
        return self._offset

    def get_models(self) -> List["Model"]:
        return list(self._models)

    # -- reading -------------------------------------------------------------

    def search(self) -> List["Row"]:
        """Compile the accumulated state, execute it and return normalized rows."""
        self._do_query(self._compile(self._slang.search))
        return self.get_result()

    def count(self) -> int:
        return len(self.search())

    def get_result(self) -> List["Row"]:
        return self.normalize_result(self._result)

    def search_entries(self) -> List[Entry]:
        entries: List[Entry] = []
        for row in self.search():
            try:
                entries.append(Entry.strict(self, row))
            except InvalidDataError as exc:
                log.warning(
                    "Skipping row that failed validation",
                    extra={"table": self.TABLE, "fields": exc.field_names},
                )
        return entries

    def load(self, primary_key: Any) -> Dict[str, Any]:
        if is_empty(primary_key):
            return {}
        return self.load_by_unique(self.primary_key, primary_key)

    def load_by_unique(self, field_name: str, value: Any) -> Dict[str, Any]:
        """
        First row where ``field_name`` equals ``value``, or ``{}``.

        Primary key lookups go through the point cache; other lookups use the
        result cache.
        """
        self.add_filter(field_name, value)
        self.set_limit(1)
        if field_name != self.primary_key:
            self.use_cache()
            rows = self.search()
            return rows[0] if rows else {}

        cache_key = self.primary_cache_key(value)
        rows = self.registry.cache.get(self.cache_group, cache_key)
        if isinstance(rows, list) and rows:
            log.debug("Point cache hit", extra={"table": self.TABLE, "cache_key": cache_key})
            self.reset()
        else:
            log.debug("Point cache miss", extra={"table": self.TABLE, "cache_key": cache_key})
            rows = self.search()
            if len(rows) == 1:
                self.registry.cache.set(self.cache_group, cache_key, rows)
        return dict(rows[0]) if rows else {}

    def load_entry(self, primary_key: Any) -> Optional[Entry]:
        """Entry for ``primary_key``, shared through the registry's Entry map."""
        if is_empty(primary_key):
            return None
        name = self.entry_name(primary_key)
        entry = self.registry.entries.get(name)
        if entry is not None:
            return entry
        data = self.load(primary_key)
        if not data:
            return None
        entry = Entry.lenient(self, data)
        self.registry.entries[name] = entry
        return entry

    def get_entry(self, data: Optional[Mapping[str, Any]] = None) -> Entry:
        return Entry.lenient(self, data)

    def entry_name(self, primary_key: Any) -> str:
        return f"{type(self).__name__}_{self.connection_name}_{primary_key}".upper()

    @staticmethod
    def primary_cache_key(value: Any) -> str:
        return f"{PRIMARY_CACHE_PREFIX}{value}"

    # -- writing -------------------------------------------------------------

    def validate(self, data: Mapping[str, Any]) -> List[InvalidFieldValueError]:
        """
        Check ``data`` against every writable field and return all failures.

        On updates (primary key present) a field missing from ``data`` is
        left untouched in storage, so only fields that are present are checked
        for required-ness.
        """
        errors: List[InvalidFieldValueError] = []
        protected = self.protected_fields()
        updating = not is_empty(data.get(self.primary_key))
        for name, definition in self.definitions().items():
            if name in protected:
                continue
            if updating and name not in data:
                continue
            value = data.get(name)
            required = self.is_required(name)
            if is_empty(value):
                if required:
                    errors.append(InvalidFieldValueError(name, value, [FIELD_IS_REQUIRED]))
                continue
            problems = get_validator(definition.type).validate(value, {OPTION_NULL_ALLOWED: not required})
            if problems:
                errors.append(InvalidFieldValueError(name, value, problems))
        return errors

    def save(self, data: Mapping[str, Any]) -> None:
        """
        Insert ``data``, or update the row its primary key names.

        Raises
        ------
        InvalidDataError
            When any field fails validation; nothing is written.
        """
        if not data:
            return
        self.reset()
        errors = self.validate(data)
        if errors:
            raise InvalidDataError(errors, code="INVALID_ENTRY")
        data = dict(data)
        if is_empty(data.get(self.primary_key)):
            self._do_query(self._compile(self._slang.insert, data))
            return
        self._update(data)

    def save_entry(self, entry: Entry) -> None:
        self.save(entry.to_dict())

    def _update(self, data: Dict[str, Any]) -> None:
        primary_value = data[self.primary_key]
        if not self._slang.writable_fields(self, data):
            log.debug("Nothing to update", extra={"table": self.TABLE, "primary_key": primary_value})
            return
        self.add_filter(self.primary_key, primary_value)
        self._do_query(self._compile(self._slang.update, self._filters[0], data))
        self.registry.cache.clear_key(self.cache_group, self.primary_cache_key(primary_value))

    def delete(self, target: Union[Entry, Any] = None) -> None:
        """
        Delete by primary key (or an Entry's key), or every row matching the
        accumulated filters. Without either nothing happens.
        """
        if isinstance(target, Entry):
            target = target.get(self.primary_key)
        if not is_empty(target):
            self.reset()
            self.add_filter(self.primary_key, target)
            self._do_query(self._compile(self._slang.delete, self._filters))
            self._forget(target)
            return
        if not self._filters:
            self.reset()
            return
        self._fields = [Field(self.primary_key)]
        for row in self.search():
            key = row.get(self.primary_key)
            if not is_empty(key):
                self.delete(key)

    def _forget(self, primary_key: Any) -> None:
        self.registry.cache.clear_key(self.cache_group, self.primary_cache_key(primary_key))
        self.registry.entries.pop(self.entry_name(primary_key), None)

    # -- execution -----------------------------------------------------------

    def _compile(self, compile_step: Callable[..., Query], *args: Any) -> Query:
        try:
            return compile_step(self, *args)
        except QueryCompileError:
            self.reset()
            raise

    def _do_query(self, query: Query) -> None:
        cache_key: Optional[str] = None
        if self._cache and query.kind is QueryKind.SELECT:
            cache_key = self.fingerprint()
            cached = self.registry.cache.get(self.cache_group, cache_key)
            if isinstance(cached, list):
                log.debug("Result cache hit", extra={"table": self.TABLE, "cache_key": cache_key})
                self.reset()
                self._result = cached
                return
            log.debug("Result cache miss", extra={"table": self.TABLE, "cache_key": cache_key})

        log.debug(
            "Executing statement",
            extra={"table": self.TABLE, "kind": query.kind.value, "sql": query.text},
        )
        self.last_error = None
        rows: List["Row"] = []
        try:
            backend = self.registry.backend(self.connection_name)
            if query.kind is QueryKind.SELECT:
                rows = list(backend.read(query.text, query.parameters))
            else:
                backend.write(query)
        except Exception as exc:  # noqa: BLE001 - backend failures degrade to an empty result
            self.last_error = exc
            self.registry.handle_exception(exc)
            rows = []

        if cache_key is not None and rows:
            self.registry.cache.set(self.cache_group, cache_key, rows)
        self.reset()
        self._result = rows

    def fingerprint(self) -> str:
        """Result cache key for the accumulated query state."""
        payload = json.dumps(self._query_state(), sort_keys=True, default=str)
        return RESULT_CACHE_PREFIX + hashlib.sha512(payload.encode("utf-8")).hexdigest()

    def _query_state(self) -> Dict[str, Any]:
        return {
            "table": self.get_table(),
            "filters": [[f.field_name, f.operator.value, f.value] for f in self._filters],
            "fields": [f.field_name for f in self._fields],
            "orders": [[o.field_name, o.direction.value] for o in self._orders],
            "limit": self._limit.value if self._limit else None,
            "offset": self._offset.value if self._offset else None,
            "models": [model._query_state() for model in self._models],
        }

    # -- value conversion ----------------------------------------------------

    def normalize_result(self, rows: List["Row"]) -> List["Row"]:
        return [self.normalize_row(row) for row in rows]

    def normalize_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Convert stored values to their Python form according to field types."""
        normalized = dict(row)
        for name, value in row.items():
            if value is None:
                continue
            data_type = DataType.parse(self.field_type(name))
            if data_type is not None:
                normalized[name] = _NORMALIZERS[data_type](value)
        return normalized

    def normalize_data(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Convert human input (e.g. form data) into storage values.

        ``<field>__<key>`` inputs are collected into a dict for ``<field>``
        when ``<field>_`` is present. The flag column accepts
        ``{flag_name: truthy}`` and is stored as the OR of the configured
        bits.
        """
        normalized: Dict[str, Any] = {}
        for name in self.field_names:
            if f"{name}_" in data:
                prefix = f"{name}__"
                normalized[name] = {
                    key[len(prefix):].lower(): value
                    for key, value in data.items()
                    if key.startswith(prefix)
                }
            if name == self.flag_field:
                flags = data.get(name)
                if isinstance(flags, Mapping):
                    normalized[name] = self._combine_flags(flags)
                elif flags is not None:
                    normalized[name] = flags
                continue
            if data.get(name) is not None:
                normalized[name] = self.import_field(name, data[name])
        return normalized

    def import_field(self, name: str, value: Any) -> Any:
        data_type = DataType.parse(self.field_type(name))
        if data_type is None:
            return value
        return _IMPORTERS[data_type](value)

    def _combine_flags(self, flags: Mapping[str, Any]) -> int:
        combined = 0
        for flag_name, status in flags.items():
            bit = self.schema.flag.get(flag_name)
            if bit is None:
                log.warning("Unknown flag", extra={"table": self.TABLE, "flag": flag_name})
                continue
            if status:
                combined |= bit
        return combined

    def is_flag(self, bit: int, source: Union[Entry, Mapping[str, Any], int, None]) -> bool:
        """True when every bit of ``bit`` is set in the flag value of ``source``."""
        if isinstance(source, Entry):
            current = source.get(self.flag_field)
        elif isinstance(source, Mapping):
            current = source.get(self.flag_field)
        else:
            current = source
        if not current:
            return False
        try:
            current = int(current)
        except (TypeError, ValueError):
            return False
        return (current & bit) == bit


__all__ = ["FIELD_IS_REQUIRED", "Model"]
