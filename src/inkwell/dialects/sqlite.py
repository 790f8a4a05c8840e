"""
SQLite dialect implementation.
"""

from __future__ import annotations

from .base import DialectCapabilities


class SQLiteDialect:
    """
    SQLite spelling: double-quoted identifiers and ``?`` placeholders.
    """

    name = "sqlite"
    capabilities = DialectCapabilities(supports_savepoints=True)

    def quote_identifier(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def format_table(self, table_name: str) -> str:
        return self.quote_identifier(table_name)

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset is None:
            return ""
        # SQLite only accepts OFFSET after a LIMIT; -1 means unbounded.
        clause = f"LIMIT {int(limit) if limit is not None else -1}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause

    def parameter_placeholder(self) -> str:
        return "?"

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        parts = [self.quote_identifier(column), column_type]
        if not nullable:
            parts.append("NOT NULL")
        return " ".join(parts)

    def render_foreign_key(self, table: str, column: str) -> str:
        return f"REFERENCES {self.format_table(table)} ({self.quote_identifier(column)})"
