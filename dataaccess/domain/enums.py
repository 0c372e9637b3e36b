"""
Closed enumerations shared by the query compiler, filters and models.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class Comparator(str, Enum):
    """Predicate operators a Filter can apply."""

    LESS = "less"
    LESS_OR_EQUAL = "lessorequal"
    EQUALS = "equals"
    GREATER_OR_EQUAL = "greaterorequal"
    GREATER = "greater"
    NOT_EQUALS = "not_equals"
    BEGINS = "begins"
    ENDS = "ends"
    CONTAINS = "contains"
    NOT_BEGINS = "not_begins"
    NOT_ENDS = "not_ends"
    NOT_CONTAINS = "not_contains"

    @classmethod
    def normalize(cls, token: Union[str, "Comparator", None]) -> Optional["Comparator"]:
        """
        Resolve ``token`` case-insensitively, e.g. ``"lessOrEqual"`` or ``"EQUALS"``.

        Returns None for unknown tokens; callers decide on the fallback.
        """
        if isinstance(token, Comparator):
            return token
        if not isinstance(token, str):
            return None
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


class DataType(str, Enum):
    """Field types a schema may declare."""

    TEXT = "text"
    NUMBER = "number"
    NUMBER_NATURAL = "number_natural"
    NUMBER_INTEGER = "number_integer"
    NUMBER_PORT = "number_port"
    DATE = "date"
    TEXT_DATE = "text_date"
    TEXT_DOMAIN = "text_domain"
    DATE_TIME = "text_timestamp"
    FILE = "file"
    STRUCTURE = "structure"
    BOOLEAN = "boolean"

    @classmethod
    def parse(cls, value: str) -> Optional["DataType"]:
        try:
            return cls(value)
        except ValueError:
            return None


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: Union[str, "Direction", None]) -> "Direction":
        """Default to ascending; reject anything that is not ASC/DESC."""
        if value is None:
            return cls.ASC
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown sort direction '{value}'. Use ASC or DESC.") from None


class QueryKind(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


__all__ = ["Comparator", "DataType", "Direction", "QueryKind"]
