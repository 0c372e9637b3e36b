"""
Query compiler: turns a Model's accumulated state into a parameterized statement.

Statements use double-quoted identifiers and named ``:key`` placeholders. The
only values ever written into statement text are list-membership literals,
which go through :func:`delimit_literal`.

Shape of a compiled search:

    SELECT <fields|*> FROM "<table>" [JOIN ...] WHERE TRUE [AND <pred>]*
        [ORDER BY ...] [LIMIT n [OFFSET m]]
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Set

from dataaccess.domain.enums import QueryKind
from dataaccess.errors import QueryCompileError
from dataaccess.query.plugins import Filter, Limit, Offset

if TYPE_CHECKING:  # pragma: no cover
    from dataaccess.model import Model

MAX_JOIN_DEPTH = 8
SETFIELD_PREFIX = "SETFIELD_"

_KEY_UNSAFE = re.compile(r"\W")


@dataclass
class Query:
    """A compiled statement plus the values bound to its placeholders."""

    text: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    kind: QueryKind = QueryKind.SELECT


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def delimit_literal(value: Any) -> str:
    """Render ``value`` as a SQL literal for ``IN (...)`` lists."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def encode_value(value: Any) -> Any:
    """Structured values are stored as JSON text."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return value


def _is_null_value(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value in ("", "null"))


class Slang:
    """
    Compiles search, insert, update and delete statements for a Model.

    Instances hold no state between calls; one instance can serve every model.
    """

    def search(self, model: "Model") -> Query:
        parameters: Dict[str, Any] = {}
        parts = [
            "SELECT",
            self._field_list(model),
            "FROM",
            quote_identifier(model.TABLE),
        ]
        parts.extend(self._joins(model, {model.get_table()}, depth=0))
        parts.append(self._where_clause(self._model_conditions(model, parameters, depth=0)))
        orders = self._model_orders(model, depth=0)
        if orders:
            parts.append("ORDER BY " + ", ".join(orders))
        parts.extend(self._pagination(model.get_limit(), model.get_offset()))
        return Query(" ".join(parts), parameters, QueryKind.SELECT)

    def insert(self, model: "Model", data: Dict[str, Any]) -> Query:
        names = [name for name in self.writable_fields(model, data) if data[name] is not None]
        table = quote_identifier(model.TABLE)
        if not names:
            return Query(f"INSERT INTO {table} DEFAULT VALUES", {}, QueryKind.INSERT)
        columns = ", ".join(quote_identifier(name) for name in names)
        placeholders = ", ".join(f":{SETFIELD_PREFIX}{name}" for name in names)
        parameters = {f"{SETFIELD_PREFIX}{name}": encode_value(data[name]) for name in names}
        return Query(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            parameters,
            QueryKind.INSERT,
        )

    def update(self, model: "Model", primary_filter: Filter, data: Dict[str, Any]) -> Query:
        names = self.writable_fields(model, data)
        if not names:
            raise QueryCompileError(
                f"Nothing to update on '{model.TABLE}'",
                code="EMPTY_UPDATE",
                context={"table": model.TABLE, "fields": sorted(data)},
            )
        parameters = {f"{SETFIELD_PREFIX}{name}": encode_value(data[name]) for name in names}
        assignments = ", ".join(
            f"{quote_identifier(name)} = :{SETFIELD_PREFIX}{name}" for name in names
        )
        condition = self._render_filter(model.TABLE, primary_filter, parameters)
        return Query(
            f"UPDATE {quote_identifier(model.TABLE)} SET {assignments} "
            + self._where_clause([condition]),
            parameters,
            QueryKind.UPDATE,
        )

    def delete(self, model: "Model", filters: Sequence[Filter]) -> Query:
        parameters: Dict[str, Any] = {}
        conditions = [self._render_filter(model.TABLE, flt, parameters) for flt in filters]
        return Query(
            f"DELETE FROM {quote_identifier(model.TABLE)} " + self._where_clause(conditions),
            parameters,
            QueryKind.DELETE,
        )

    def where(self, filters: Iterable[Filter]) -> Query:
        """Render a flat filter list, without a model, using index based keys."""
        parameters: Dict[str, Any] = {}
        conditions = [
            self._render_filter(None, flt, parameters, key=f"FILTER_{index}")
            for index, flt in enumerate(filters, start=1)
        ]
        return Query(self._where_clause(conditions), parameters, QueryKind.SELECT)

    @staticmethod
    def writable_fields(model: "Model", data: Dict[str, Any]) -> List[str]:
        """Schema fields present in ``data`` minus the primary key and audit fields."""
        protected = model.protected_fields()
        return [name for name in model.field_names if name in data and name not in protected]

    # -- clauses -------------------------------------------------------------

    @staticmethod
    def _field_list(model: "Model") -> str:
        fields = model.get_select_fields()
        if not fields:
            return "*"
        table = quote_identifier(model.get_table())
        return ", ".join(f"{table}.{quote_identifier(f.field_name)}" for f in fields)

    def _joins(self, model: "Model", seen: Set[str], depth: int) -> List[str]:
        self._check_depth(model, depth)
        clauses: List[str] = []
        for joined in model.get_models():
            name = joined.get_table()
            if name in seen:
                raise QueryCompileError(
                    f"Join alias '{name}' is used twice; give each joined model a unique alias",
                    code="DUPLICATE_JOIN_ALIAS",
                    context={"alias": name},
                )
            seen.add(name)
            clause = f"JOIN {quote_identifier(joined.TABLE)}"
            if joined.get_join_alias():
                clause += f" AS {quote_identifier(name)}"
            clause += f" USING ({quote_identifier(joined.primary_key)})"
            clauses.append(clause)
            clauses.extend(self._joins(joined, seen, depth + 1))
        return clauses

    def _model_conditions(self, model: "Model", parameters: Dict[str, Any], depth: int) -> List[str]:
        self._check_depth(model, depth)
        conditions: List[str] = []
        for joined in model.get_models():
            conditions.extend(self._model_conditions(joined, parameters, depth + 1))
        table = model.get_table()
        for flt in model.get_filters():
            conditions.append(self._render_filter(table, flt, parameters))
        return conditions

    def _model_orders(self, model: "Model", depth: int) -> List[str]:
        self._check_depth(model, depth)
        table = quote_identifier(model.get_table())
        orders = [
            f"{table}.{quote_identifier(order.field_name)} {order.direction.value}"
            for order in model.get_orders()
        ]
        for joined in model.get_models():
            orders.extend(self._model_orders(joined, depth + 1))
        return orders

    @staticmethod
    def _pagination(limit: Optional[Limit], offset: Optional[Offset]) -> List[str]:
        if limit is None or limit.value <= 0:
            return []
        parts = [f"LIMIT {limit.value}"]
        if offset is not None and offset.value > 0:
            parts.append(f"OFFSET {offset.value}")
        return parts

    @staticmethod
    def _where_clause(conditions: Iterable[str]) -> str:
        return "WHERE TRUE" + "".join(f" AND {condition}" for condition in conditions)

    def _render_filter(
        self,
        qualifier: Optional[str],
        flt: Filter,
        parameters: Dict[str, Any],
        key: Optional[str] = None,
    ) -> str:
        column = quote_identifier(flt.field_name)
        if qualifier:
            column = f"{quote_identifier(qualifier)}.{column}"
        value = flt.rendered_value()
        if isinstance(value, (list, tuple)):
            literals = ", ".join(delimit_literal(item) for item in value)
            return f"{column} IN ({literals})"
        if _is_null_value(value):
            return f"{column} IS NULL"
        key = self._unique_key(key or f"{qualifier}_FILTER_{flt.field_name}", parameters)
        parameters[key] = value
        return f"{column} {flt.operator_token()} :{key}"

    @staticmethod
    def _unique_key(key: str, parameters: Dict[str, Any]) -> str:
        key = _KEY_UNSAFE.sub("_", key)
        candidate, suffix = key, 1
        while candidate in parameters:
            suffix += 1
            candidate = f"{key}_{suffix}"
        return candidate

    @staticmethod
    def _check_depth(model: "Model", depth: int) -> None:
        if depth > MAX_JOIN_DEPTH:
            raise QueryCompileError(
                f"Joins nested deeper than {MAX_JOIN_DEPTH} levels starting at '{model.TABLE}'",
                code="JOIN_DEPTH_EXCEEDED",
                context={"table": model.TABLE, "max_depth": MAX_JOIN_DEPTH},
            )


__all__ = [
    "MAX_JOIN_DEPTH",
    "Query",
    "Slang",
    "delimit_literal",
    "encode_value",
    "quote_identifier",
]
