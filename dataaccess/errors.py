"""
Exception hierarchy for the data-access layer.

Every exception carries a machine-friendly ``code`` next to the human message
and an optional ``context`` mapping, so callers and log handlers can report
failures without parsing message strings.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class DataAccessError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or message
        self.context: Dict[str, Any] = dict(context or {})


class InvalidFieldValueError(DataAccessError):
    """A single field value failed its type validator."""

    def __init__(self, field_name: str, value: Any, errors: Sequence[str]) -> None:
        code = f"EXCEPTION_INVALID_{field_name.upper()}"
        super().__init__(
            f"Invalid value for field '{field_name}': {'; '.join(errors)}",
            code=code,
            context={"field_name": field_name, "value": value, "errors": list(errors)},
        )
        self.field_name = field_name
        self.value = value
        self.errors: List[str] = list(errors)


class InvalidDataError(DataAccessError):
    """One or more fields failed validation; the whole operation is rejected."""

    def __init__(self, errors: Sequence[InvalidFieldValueError], code: str = "INVALID_DATA") -> None:
        names = ", ".join(error.field_name for error in errors)
        super().__init__(
            f"Invalid data for field(s): {names}",
            code=code,
            context={"fields": [error.field_name for error in errors]},
        )
        self.errors: List[InvalidFieldValueError] = list(errors)

    @property
    def field_names(self) -> List[str]:
        return [error.field_name for error in self.errors]


class ConfigurationError(DataAccessError):
    """A model schema could not be loaded or is structurally invalid."""


class QueryCompileError(DataAccessError):
    """The accumulated model state cannot be turned into a statement."""


__all__ = [
    "DataAccessError",
    "InvalidFieldValueError",
    "InvalidDataError",
    "ConfigurationError",
    "QueryCompileError",
]
