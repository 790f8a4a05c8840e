"""
Dialect interface: the SQL spelling a backend expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DialectCapabilities:
    supports_savepoints: bool = True


class Dialect(Protocol):
    """
    Rendering rules shared by the query compiler, schema builder and
    transaction manager.
    """

    name: str
    capabilities: DialectCapabilities

    def quote_identifier(self, identifier: str) -> str: ...

    def format_table(self, table_name: str) -> str: ...

    def limit_clause(self, limit: int | None, offset: int | None) -> str: ...

    def parameter_placeholder(self) -> str: ...

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str: ...

    def render_foreign_key(self, table: str, column: str) -> str: ...
