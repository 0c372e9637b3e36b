"""
Value objects that carry query intent: filters, ordering, pagination and
projection.

Filters are typed by the field they target. The variant only decides which
comparators make sense for the field (``COMPARATORS``); rendering is shared:

    >>> f = Filter.create("name", "text", Comparator.CONTAINS, "jo")
    >>> f.rendered_value(), f.operator_token()
    ('%jo%', 'LIKE')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Type, Union

from dataaccess.domain.enums import Comparator, Direction

_MASKS: Dict[Comparator, str] = {
    Comparator.BEGINS: "{value}%",
    Comparator.ENDS: "%{value}",
    Comparator.CONTAINS: "%{value}%",
}

_OPERATOR_TOKENS: Dict[Comparator, str] = {
    Comparator.LESS: "<",
    Comparator.LESS_OR_EQUAL: "<=",
    Comparator.EQUALS: "=",
    Comparator.GREATER_OR_EQUAL: ">=",
    Comparator.GREATER: ">",
    Comparator.NOT_EQUALS: "!=",
    Comparator.BEGINS: "LIKE",
    Comparator.ENDS: "LIKE",
    Comparator.CONTAINS: "LIKE",
    Comparator.NOT_BEGINS: "=",
    Comparator.NOT_ENDS: "=",
    Comparator.NOT_CONTAINS: "=",
}

_RANGE_COMPARATORS = frozenset(
    {
        Comparator.NOT_EQUALS,
        Comparator.GREATER_OR_EQUAL,
        Comparator.GREATER,
        Comparator.EQUALS,
        Comparator.LESS_OR_EQUAL,
        Comparator.LESS,
    }
)


@dataclass
class Filter:
    """
    A predicate on one field: ``<field> <operator> <value>``.

    Use :meth:`create` to get the variant matching the field's type.
    """

    COMPARATORS: ClassVar[FrozenSet[Comparator]] = frozenset(Comparator)

    field_name: str
    operator: Comparator
    value: Any
    _mask: Optional[str] = field(default=None, init=False, repr=False, compare=False)

    @staticmethod
    def create(
        field_name: str,
        field_type: str,
        operator: Union[Comparator, str, None],
        value: Any,
    ) -> "Filter":
        comparator = Comparator.normalize(operator) or Comparator.EQUALS
        return filter_class_for(field_type)(field_name, comparator, value)

    @property
    def mask(self) -> str:
        if self._mask is None:
            self._mask = _MASKS.get(self.operator, "")
        return self._mask

    def rendered_value(self) -> Any:
        """The value as it is bound: masked for LIKE operators, raw otherwise."""
        if not self.mask or isinstance(self.value, (list, tuple)):
            return self.value
        return self.mask.format(value=self.value)

    def operator_token(self) -> str:
        return _OPERATOR_TOKENS[self.operator]

    @classmethod
    def accepts(cls, comparator: Comparator) -> bool:
        return comparator in cls.COMPARATORS


@dataclass
class NumberFilter(Filter):
    COMPARATORS: ClassVar[FrozenSet[Comparator]] = _RANGE_COMPARATORS


@dataclass
class DateFilter(Filter):
    COMPARATORS: ClassVar[FrozenSet[Comparator]] = _RANGE_COMPARATORS


@dataclass
class TextFilter(Filter):
    COMPARATORS: ClassVar[FrozenSet[Comparator]] = frozenset(
        {
            Comparator.CONTAINS,
            Comparator.NOT_CONTAINS,
            Comparator.BEGINS,
            Comparator.NOT_BEGINS,
            Comparator.ENDS,
            Comparator.NOT_ENDS,
            Comparator.EQUALS,
            Comparator.NOT_EQUALS,
        }
    )


def filter_class_for(field_type: str) -> Type[Filter]:
    """Pick the Filter variant by type prefix (``number*``, ``date*``/``text_date*``)."""
    if field_type.startswith("number"):
        return NumberFilter
    if field_type.startswith("date") or field_type.startswith("text_date"):
        return DateFilter
    return TextFilter


@dataclass(frozen=True)
class Order:
    field_name: str
    direction: Direction = Direction.ASC

    @classmethod
    def create(cls, field_name: str, direction: Union[str, Direction, None] = None) -> "Order":
        return cls(field_name, Direction.parse(direction))


@dataclass(frozen=True)
class Limit:
    """Row cap; always within ``[0, max_limit]``."""

    value: int
    max_limit: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", max(0, min(int(self.value), self.max_limit)))


@dataclass(frozen=True)
class Offset:
    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", max(0, int(self.value)))


@dataclass(frozen=True)
class Field:
    field_name: str


__all__ = [
    "Filter",
    "NumberFilter",
    "DateFilter",
    "TextFilter",
    "filter_class_for",
    "Order",
    "Limit",
    "Offset",
    "Field",
]
