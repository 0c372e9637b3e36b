"""
Query package: intent value objects and the statement compiler.
"""

from dataaccess.query.plugins import (
    DateFilter,
    Field,
    Filter,
    Limit,
    NumberFilter,
    Offset,
    Order,
    TextFilter,
)
from dataaccess.query.slang import Query, Slang, delimit_literal, quote_identifier

__all__ = [
    "DateFilter",
    "Field",
    "Filter",
    "Limit",
    "NumberFilter",
    "Offset",
    "Order",
    "TextFilter",
    "Query",
    "Slang",
    "delimit_literal",
    "quote_identifier",
]
