"""
Domain package for the data-access layer.

Exports the schema descriptors and the closed enumerations used across the
query compiler and models. Keep this package focused on data definitions and
validation concerns.
"""

from dataaccess.domain.enums import Comparator, DataType, Direction, QueryKind
from dataaccess.domain.models import FieldDefinition, FieldSchema, SchemaDescriptor

__all__ = [
    "Comparator",
    "DataType",
    "Direction",
    "QueryKind",
    "FieldDefinition",
    "FieldSchema",
    "SchemaDescriptor",
]
