"""
Entry: one row of a Model with per-field validation and change tracking.
EntryStack: a batch of Entries edited and saved together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Mapping, Optional

from dataaccess.errors import InvalidDataError, InvalidFieldValueError
from dataaccess.utils.logging import get_logger
from dataaccess.utils.values import is_empty, loosely_equal
from dataaccess.validators import OPTION_NULL_ALLOWED, get_validator

if TYPE_CHECKING:  # pragma: no cover
    from dataaccess.model import Model

log = get_logger(__name__)

NULL_PLACEHOLDER = "null"


class Entry:
    """
    A validated row bound to its Model.

    Only schema fields are kept and a field is only ever stored once its value
    passed the field's type validator. Construction does not count as a change;
    tracking starts once the entry is built.

    Parameters
    ----------
    model : Model
        The model whose schema the entry follows and which persists it.
    data : Mapping[str, Any], optional
        Initial field values; unknown keys are ignored.
    strict : bool
        When True, invalid initial values raise ``InvalidDataError`` instead of
        being skipped with a warning.
    """

    def __init__(self, model: "Model", data: Optional[Mapping[str, Any]] = None, strict: bool = False) -> None:
        self._model = model
        self._data: Dict[str, Any] = {}
        self._changed_fields: Optional[Dict[str, Dict[str, Any]]] = None
        data = data or {}
        failures = self._apply({name: data[name] for name in model.field_names if name in data})
        if failures:
            if strict:
                raise InvalidDataError(failures)
            for failure in failures:
                log.warning(
                    "Skipping invalid field value",
                    extra={"table": model.TABLE, "field_name": failure.field_name, "errors": failure.errors},
                )
        self._changed_fields = {}

    @classmethod
    def lenient(cls, model: "Model", data: Optional[Mapping[str, Any]] = None) -> "Entry":
        return cls(model, data)

    @classmethod
    def strict(cls, model: "Model", data: Optional[Mapping[str, Any]] = None) -> "Entry":
        return cls(model, data, strict=True)

    def __repr__(self) -> str:
        return f"Entry(table={self._model.TABLE!r}, data={self._data!r})"

    @property
    def model(self) -> "Model":
        return self._model

    @property
    def changed_fields(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._changed_fields or {})

    def get(self, field_name: str) -> Any:
        return self._data.get(field_name)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def set(self, field_name: str, value: Any) -> None:
        self.set_many({field_name: value})

    def set_many(self, fields: Mapping[str, Any]) -> None:
        """
        Apply every field; valid ones stick even when others fail.

        Raises
        ------
        InvalidDataError
            Naming every field that failed validation.
        """
        failures = self._apply(fields)
        if failures:
            raise InvalidDataError(failures)

    def save(self) -> None:
        if not self._changed_fields:
            return
        self._model.save_entry(self)
        self._changed_fields = {}

    def _apply(self, fields: Mapping[str, Any]) -> List[InvalidFieldValueError]:
        failures: List[InvalidFieldValueError] = []
        for name, value in fields.items():
            try:
                self._set_field(name, value)
            except InvalidFieldValueError as exc:
                failures.append(exc)
        return failures

    def _set_field(self, name: str, value: Any) -> None:
        if not self._model.field_exists(name):
            return
        if is_empty(value):
            value = None
        if loosely_equal(self._data.get(name), value):
            return
        self._record_change(name, value)
        definition = self._model.definition(name)
        required = self._model.is_required(name)
        problems = get_validator(definition.type).validate(value, {OPTION_NULL_ALLOWED: not required})
        if problems:
            raise InvalidFieldValueError(name, value, problems)
        self._data[name] = value

    def _record_change(self, name: str, value: Any) -> None:
        if self._changed_fields is None:
            return
        previous = self._changed_fields.get(name)
        old = previous["old"] if previous else self._data.get(name, NULL_PLACEHOLDER)
        self._changed_fields[name] = {
            "old": NULL_PLACEHOLDER if old is None else old,
            "new": NULL_PLACEHOLDER if value is None else value,
        }


class EntryStack:
    """
    Ordered batch of Entries.

    Writing a field or saving locks the stack against new members; saving
    unlocks it again afterwards.
    """

    def __init__(self, entries: Optional[Iterable[Any]] = None) -> None:
        self._entries: List[Entry] = []
        self._locked = False
        if entries is not None:
            self.add_entries(entries)

    @property
    def locked(self) -> bool:
        return self._locked

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries))

    def add_entries(self, entries: Iterable[Any]) -> "EntryStack":
        for entry in entries:
            self.add_entry(entry)
        return self

    def add_entry(self, entry: Any) -> "EntryStack":
        if self._locked:
            log.debug("EntryStack is locked; entry not added")
            return self
        if not isinstance(entry, Entry):
            log.debug("Skipping non-Entry item", extra={"item_type": type(entry).__name__})
            return self
        self._entries.append(entry)
        return self

    def get(self, field_name: str) -> List[Any]:
        return [entry.get(field_name) for entry in self._entries]

    def set(self, field_name: str, value: Any) -> None:
        self._locked = True
        for entry in self._entries:
            entry.set(field_name, value)

    def save(self) -> List[Exception]:
        """Save each entry on its own and return the failures."""
        self._locked = True
        failures: List[Exception] = []
        try:
            for entry in self._entries:
                try:
                    entry.save()
                except Exception as exc:  # noqa: BLE001 - one failing entry must not stop the batch
                    failures.append(exc)
                    entry.model.registry.handle_exception(exc)
        finally:
            self._locked = False
        return failures


__all__ = ["Entry", "EntryStack", "NULL_PLACEHOLDER"]
