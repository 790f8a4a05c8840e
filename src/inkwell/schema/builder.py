"""
Schema builder converting model metadata into DDL statements.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from ..core.model import Model
from ..core.registry import ModelRegistry
from ..core.relations import ForeignKey, RelationshipError
from ..dialects.base import Dialect
from ..utils import get_logger

if TYPE_CHECKING:
    from ..adapters.base import DatabaseAdapter


class SchemaBuilder:
    """
    Produces dialect-specific SQL for schema manipulation.
    """

    def __init__(self, dialect: Dialect, registry: ModelRegistry | None = None) -> None:
        self.dialect = dialect
        self.registry = registry or ModelRegistry()
        self.logger = get_logger("schema.builder")

    def create_table_sql(self, model: type[Model]) -> str:
        table_name = self.dialect.format_table(model._meta.table_name)
        column_list = ", ".join(self._render_columns(model))
        return f"CREATE TABLE IF NOT EXISTS {table_name} ({column_list})"

    def drop_table_sql(self, model: type[Model]) -> str:
        table_name = self.dialect.format_table(model._meta.table_name)
        self.logger.warning(
            "DROP TABLE generated for %s; confirm destructive change before applying.",
            table_name,
        )
        return f"DROP TABLE IF EXISTS {table_name}"

    def ordered_models(self) -> List[type[Model]]:
        """
        Registered models with every referenced table before its referrers.
        """
        ordered: List[type[Model]] = []
        visiting: set[type[Model]] = set()

        def visit(model: type[Model]) -> None:
            if model in ordered:
                return
            if model in visiting:
                raise RelationshipError(f"Circular foreign keys involving '{model.__name__}'.")
            visiting.add(model)
            for field in model._meta.get_fields():
                if isinstance(field, ForeignKey):
                    target = self.registry.foreign_key_target(field)
                    if target is not model:
                        visit(target)
            visiting.discard(model)
            ordered.append(model)

        for model in self.registry.models():
            visit(model)
        return ordered

    def create_all(self, adapter: "DatabaseAdapter") -> List[str]:
        statements = [self.create_table_sql(model) for model in self.ordered_models()]
        for statement in statements:
            adapter.execute(statement)
        self.logger.info("Created %d table(s)", len(statements))
        return statements

    def _render_columns(self, model: type[Model]) -> List[str]:
        pieces: List[str] = []
        for field in model._meta.get_fields():
            column_type = field.db_type
            if not column_type:
                raise ValueError(f"Field '{field.name}' missing db_type for schema generation.")
            column_def = self.dialect.render_column_definition(
                field.column_name(),
                column_type,
                nullable=field.nullable if not field.primary_key else False,
            )
            extras: List[str] = []
            if field.primary_key:
                extras.append("PRIMARY KEY")
                if field.generated:
                    extras.append("AUTOINCREMENT")
            if field.unique and not field.primary_key:
                extras.append("UNIQUE")
            default_sql = self._default_clause(field)
            if default_sql:
                extras.append(default_sql)
            if isinstance(field, ForeignKey):
                extras.append(self._references_clause(field))

            if extras:
                column_def = f"{column_def} {' '.join(extras)}"
            pieces.append(column_def)
        return pieces

    def _references_clause(self, field: ForeignKey) -> str:
        target = self.registry.foreign_key_target(field)
        pk_field = target._meta.primary_key
        if pk_field is None:
            raise ValueError(f"Related model '{target.__name__}' lacks primary key.")
        return self.dialect.render_foreign_key(target._meta.table_name, pk_field.column_name())

    def _default_clause(self, field) -> str | None:
        if field.default is None or callable(field.default):
            return None
        value = field.default
        if isinstance(value, str):
            escaped = value.replace("'", "''")
            return f"DEFAULT '{escaped}'"
        if isinstance(value, bool):
            return f"DEFAULT {1 if value else 0}"
        return f"DEFAULT {value}"
