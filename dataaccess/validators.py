"""
Value validators per schema DataType.

Each validator exposes ``validate(value, options) -> list[str]``; an empty list
means the value is acceptable. Validation is delegated to pydantic
``TypeAdapter`` instances so the coercion rules match the rest of the domain
layer (e.g. ``"7"`` is a valid ``number_natural`` while ``-1`` is not).
"""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from typing import Annotated, Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from dataaccess.domain.enums import DataType

OPTION_NULL_ALLOWED = "null_allowed"

_DOMAIN_PATTERN = r"^([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$"

_ANNOTATIONS: Dict[DataType, Any] = {
    DataType.TEXT: str,
    DataType.NUMBER: float,
    DataType.NUMBER_NATURAL: Annotated[int, Field(ge=0)],
    DataType.NUMBER_INTEGER: int,
    DataType.NUMBER_PORT: Annotated[int, Field(ge=0, le=65535)],
    DataType.DATE: date,
    DataType.TEXT_DATE: date,
    DataType.TEXT_DOMAIN: Annotated[str, StringConstraints(max_length=253, pattern=_DOMAIN_PATTERN)],
    DataType.DATE_TIME: datetime,
    DataType.FILE: str,
    DataType.STRUCTURE: Union[Dict[str, Any], List[Any]],
    DataType.BOOLEAN: bool,
}


@runtime_checkable
class Validator(Protocol):
    """Checks one value and returns a list of human readable problems."""

    def validate(self, value: Any, options: Optional[Mapping[str, Any]] = None) -> List[str]:
        ...


class TypeAdapterValidator:
    """Validator backed by a pydantic TypeAdapter."""

    def __init__(self, data_type: DataType, annotation: Any) -> None:
        self.data_type = data_type
        self._adapter: TypeAdapter[Any] = TypeAdapter(annotation)

    def validate(self, value: Any, options: Optional[Mapping[str, Any]] = None) -> List[str]:
        options = options or {}
        if value is None:
            if options.get(OPTION_NULL_ALLOWED, True):
                return []
            return ["value is required"]
        try:
            self._adapter.validate_python(value)
        except ValidationError as exc:
            return [error["msg"] for error in exc.errors()]
        return []

    def __repr__(self) -> str:
        return f"TypeAdapterValidator({self.data_type.value})"


@lru_cache(maxsize=None)
def _validator_for(data_type: DataType) -> TypeAdapterValidator:
    return TypeAdapterValidator(data_type, _ANNOTATIONS[data_type])


def get_validator(type_name: Union[str, DataType]) -> Validator:
    """
    Return the validator for ``type_name``; unknown types validate as text.
    """
    data_type = type_name if isinstance(type_name, DataType) else DataType.parse(type_name)
    return _validator_for(data_type or DataType.TEXT)


__all__ = ["OPTION_NULL_ALLOWED", "Validator", "TypeAdapterValidator", "get_validator"]
