"""
SQL compilation utilities translating expressions into SQL strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Tuple

from ..dialects.base import Dialect
from .expressions import Q

if TYPE_CHECKING:
    from ..core.model import Model


LOOKUP_OPERATORS = {
    "exact": "=",
    "iexact": "LIKE",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "contains": "LIKE",
    "in": "IN",
}


def escape_like(value: str) -> str:
    """
    Escape LIKE wildcards so ``value`` matches literally under ``ESCAPE '\\'``.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLCompiler:
    """
    Compile QuerySet state into SQL statements and parameters.
    """

    def __init__(
        self,
        model: type["Model"],
        dialect: Dialect,
        where: Q | None = None,
        ordering: tuple[str, ...] = (),
        limit: int | None = None,
        offset: int | None = None,
    ) -> None:
        self.model = model
        self.dialect = dialect
        self.where = where
        self.ordering = ordering
        self.limit = limit
        self.offset = offset

    def compile(self) -> Tuple[str, List[Any]]:
        columns = ", ".join(
            self.dialect.quote_identifier(field.column_name())
            for field in self.model._meta.get_fields()
        )
        sql_parts: List[str] = [f"SELECT {columns}", "FROM", self._table()]
        params = self._append_where(sql_parts)

        if self.ordering:
            order_sql = ", ".join(self._compile_ordering(field) for field in self.ordering)
            sql_parts.append("ORDER BY")
            sql_parts.append(order_sql)

        limit_clause = self.dialect.limit_clause(self.limit, self.offset)
        if limit_clause:
            sql_parts.append(limit_clause)

        return " ".join(sql_parts), params

    def compile_count(self) -> Tuple[str, List[Any]]:
        sql_parts: List[str] = ["SELECT COUNT(*)", "FROM", self._table()]
        params = self._append_where(sql_parts)
        return " ".join(sql_parts), params

    def compile_delete(self) -> Tuple[str, List[Any]]:
        sql_parts: List[str] = ["DELETE FROM", self._table()]
        params = self._append_where(sql_parts)
        return " ".join(sql_parts), params

    def compile_update(self, values: dict[str, Any]) -> Tuple[str, List[Any]]:
        if not values:
            raise ValueError("update() requires at least one field.")
        placeholder = self.dialect.parameter_placeholder()
        assignments = []
        params: List[Any] = []
        for name, value in values.items():
            field = self.model._meta.get_field(name)
            assignments.append(f"{self.dialect.quote_identifier(field.column_name())} = {placeholder}")
            params.append(self._db_value(field, value))
        sql_parts: List[str] = ["UPDATE", self._table(), "SET", ", ".join(assignments)]
        params.extend(self._append_where(sql_parts))
        return " ".join(sql_parts), params

    # Helpers -----------------------------------------------------------
    def _table(self) -> str:
        return self.dialect.format_table(self.model._meta.table_name)

    def _append_where(self, sql_parts: List[str]) -> List[Any]:
        if self.where is None or self.where.is_empty():
            return []
        where_sql, where_params = self._compile_q(self.where)
        if not where_sql:
            return []
        sql_parts.append("WHERE")
        sql_parts.append(where_sql)
        return where_params

    def _compile_ordering(self, field_name: str) -> str:
        descending = field_name.startswith("-")
        name = field_name[1:] if descending else field_name
        field = self.model._meta.get_field(name)
        clause = self.dialect.quote_identifier(field.column_name())
        if descending:
            clause += " DESC"
        return clause

    def _compile_q(self, q: Q) -> Tuple[str, List[Any]]:
        parts: List[str] = []
        params: List[Any] = []

        for child in q.children:
            if isinstance(child, Q):
                child_sql, child_params = self._compile_q(child)
                if child_sql:
                    parts.append(f"({child_sql})")
                    params.extend(child_params)
            else:
                field_lookup, value = child
                sql, child_params = self._compile_lookup(field_lookup, value)
                parts.append(sql)
                params.extend(child_params)

        if not parts:
            return "", []

        sql = f" {q.connector} ".join(parts)
        if q.negated:
            sql = f"NOT ({sql})"
        return sql, params

    def _compile_lookup(self, field_lookup: str, value: Any) -> Tuple[str, List[Any]]:
        if "__" in field_lookup:
            field_name, lookup = field_lookup.split("__", 1)
        else:
            field_name, lookup = field_lookup, "exact"

        field = self.model._meta.get_field(field_name)
        column = self.dialect.quote_identifier(field.column_name())

        if value is None:
            if lookup != "exact":
                raise ValueError("NULL comparison only supported for equality.")
            return f"{column} IS NULL", []

        operator = LOOKUP_OPERATORS.get(lookup)
        if operator is None:
            raise ValueError(f"Unsupported lookup '{lookup}'")

        placeholder = self.dialect.parameter_placeholder()
        if lookup == "in":
            values = [self._db_value(field, item) for item in value]
            if not values:
                return "0 = 1", []
            placeholders = ", ".join(placeholder for _ in values)
            return f"{column} IN ({placeholders})", values

        value = self._db_value(field, value)
        if operator == "LIKE":
            pattern = escape_like(str(value))
            if lookup == "contains":
                pattern = f"%{pattern}%"
            return f"{column} LIKE {placeholder} ESCAPE '\\'", [pattern]
        return f"{column} {operator} {placeholder}", [value]

    @staticmethod
    def _db_value(field, value: Any) -> Any:
        if hasattr(value, "_meta") and hasattr(value, "pk"):
            value = value.pk
        return field.to_db(value)
