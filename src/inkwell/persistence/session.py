"""
Session management coordinating adapters, unit of work, and identity map.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, TypeVar

from ..adapters.base import ConnectionConfig, DatabaseAdapter
from ..core.model import Model
from ..core.registry import ModelRegistry
from ..core.relations import DeleteRestrictedError, OnDelete, RelationshipError
from ..dialects.base import Dialect
from ..dialects.sqlite import SQLiteDialect
from ..query import Q, QuerySet, SQLCompiler
from ..utils import get_logger
from ..validation import ValidationError, ValidationResult
from .identity_map import IdentityMap
from .transaction import TransactionManager
from .unit_of_work import UnitOfWork

TModel = TypeVar("TModel", bound=Model)

SaveResult = ValidationResult


class StaleInstanceError(RuntimeError):
    """
    Raised when a write matches no row, because the instance's row was
    deleted or never committed.
    """


class Session:
    """
    Coordinates persistence operations for the models of one registry.

    Two write styles are offered. ``save``/``destroy`` act immediately and
    report invalid data as a :class:`ValidationResult`. ``add``/``delete``
    queue work for ``flush``/``commit``, which raise :class:`ValidationError`
    on invalid data.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        registry: ModelRegistry,
        connection_config: Optional[ConnectionConfig] = None,
        dsn: Optional[str] = None,
        autocommit: bool = False,
    ) -> None:
        if connection_config is not None and dsn is not None:
            raise ValueError("Pass either connection_config or dsn, not both.")
        if dsn is not None:
            connection_config = ConnectionConfig.from_dsn(dsn)
        self.adapter = adapter
        self.registry = registry
        self.autocommit = autocommit
        self.dialect: Dialect = getattr(adapter, "dialect", None) or SQLiteDialect()
        self.connection_config = connection_config or ConnectionConfig(url="sqlite:///:memory:")
        self.identity_map = IdentityMap()
        self.unit_of_work = UnitOfWork()
        self.transaction_manager = TransactionManager(adapter, self.dialect)
        self._uow_snapshots: list[tuple[list[Model], list[Model], list[Model]]] = []
        # Persisted instances whose last save() failed validation; flush skips them.
        self._rejected: List[Model] = []
        self.hooks = registry.hooks
        self.logger = get_logger("persistence.session")
        self.adapter.connect(self.connection_config)
        self.logger.debug("Session opened on %s", self.connection_config.descriptive_label())

    # ------------------------------------------------------------------ #
    # Context management
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "Session":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type:
                self.rollback()
            else:
                self.commit()
        finally:
            self.close()

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #
    def begin(self) -> None:
        self.transaction_manager.begin()
        self._uow_snapshots.append(self.unit_of_work.snapshot())

    def commit(self) -> None:
        if self.transaction_manager.depth == 0:
            self.begin()
        try:
            self.flush()
        except Exception:
            self.rollback()
            raise
        self.transaction_manager.commit()
        if self._uow_snapshots:
            self._uow_snapshots.pop()
        if self.transaction_manager.depth == 0:
            self.unit_of_work.clear()
            self.hooks.fire("after_commit", None, session=self)

    def rollback(self) -> None:
        self.transaction_manager.rollback()
        if self._uow_snapshots:
            self.unit_of_work.restore(self._uow_snapshots.pop())
        else:
            self.unit_of_work.clear()

    def close(self) -> None:
        if self.transaction_manager.active:
            self.logger.warning(
                "Closing session with an open transaction; uncommitted changes are discarded."
            )
            self.transaction_manager.reset()
        self.adapter.close()
        for instance in self.identity_map.values():
            instance._session = None
        self.identity_map.clear()
        self.unit_of_work.clear()
        self._uow_snapshots.clear()
        self._rejected.clear()

    @contextmanager
    def transaction(self) -> Iterator["Session"]:
        """
        Unit-of-work transaction; nested use maps to savepoints.
        """

        self.begin()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        else:
            self.commit()

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        # Immediate writes: no flush of queued work, only a transaction scope.
        with self.transaction_manager.atomic():
            yield
        if self.transaction_manager.depth == 0:
            self.hooks.fire("after_commit", None, session=self)

    # ------------------------------------------------------------------ #
    # Immediate writes
    # ------------------------------------------------------------------ #
    def save(self, instance: TModel) -> "ValidationResult[TModel]":
        """
        Validate and write ``instance``.

        Invalid instances are not written; the failure comes back as the
        result and on ``instance.errors``.
        A persisted instance that fails keeps its unsaved values, but later
        flushes leave it alone until it is saved or added again.
        """

        self._require_registered(instance.__class__)
        result = self._validate(instance)
        if not result.ok:
            self.logger.info(
                "%s not saved; invalid fields: %s",
                instance.__class__.__name__,
                ", ".join(result.errors),
            )
            if instance._persisted and not self._is_rejected(instance):
                self._rejected.append(instance)
            return result
        with self._atomic():
            self._write(instance)
        self._forget_rejected(instance)
        self.unit_of_work.new = [obj for obj in self.unit_of_work.new if obj is not instance]
        return result

    def destroy(self, instance: Model) -> None:
        """
        Delete ``instance`` now, applying the delete policy of each of its
        has-many relations first.
        """

        self._require_registered(instance.__class__)
        with self._atomic():
            self._persist_deleted(instance)

    # ------------------------------------------------------------------ #
    # Unit of work registration
    # ------------------------------------------------------------------ #
    def add(self, instance: Model) -> None:
        self._require_registered(instance.__class__)
        self._forget_rejected(instance)
        if instance._persisted:
            self.unit_of_work.register_dirty(instance)
        else:
            self.unit_of_work.register_new(instance)
        if self.autocommit:
            self.commit()

    def delete(self, instance: Model) -> None:
        self._require_registered(instance.__class__)
        self.unit_of_work.register_deleted(instance)
        if self.autocommit:
            self.commit()

    def flush(self) -> None:
        self.unit_of_work.collect_dirty(
            obj for obj in self.identity_map.values() if not self._is_rejected(obj)
        )
        for instance in list(self.unit_of_work.new):
            self._persist_new(instance)
            self.unit_of_work.new.remove(instance)
        for instance in list(self.unit_of_work.dirty):
            self._persist_dirty(instance)
            self.unit_of_work.dirty.remove(instance)
        for instance in list(self.unit_of_work.deleted):
            self._persist_deleted(instance)
            self.unit_of_work.deleted.remove(instance)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def query(self, model: Type[TModel]) -> QuerySet:
        self._require_registered(model)
        return QuerySet(model, session=self)

    def get(self, model: Type[TModel], **filters: Any) -> Optional[TModel]:
        if len(filters) != 1:
            raise ValueError("Session.get supports exactly one filter.")
        field_name, value = next(iter(filters.items()))
        pk_field = model._meta.primary_key
        if pk_field is not None and field_name == pk_field.name:
            cached = self.identity_map.get(model, value)
            if cached is not None:
                return cached
        return self.query(model).filter(**{field_name: value}).first()

    def related(self, instance: Model, name: str) -> List[Model]:
        """
        Rows of the has-many relation ``name`` that reference ``instance``,
        in the relation's declared order (primary key ascending by default).
        """

        resolved = self.registry.relation(instance.__class__, name)
        if instance.pk is None:
            return []
        fk_name = resolved.foreign_key.require_name()
        return list(
            self.query(resolved.target)
            .filter(**{fk_name: instance.pk})
            .order_by(*resolved.ordering)
        )

    def count_related(self, instance: Model, name: str) -> int:
        resolved = self.registry.relation(instance.__class__, name)
        if instance.pk is None:
            return 0
        fk_name = resolved.foreign_key.require_name()
        return self.query(resolved.target).filter(**{fk_name: instance.pk}).count()

    def execute(self, sql: str, params: Iterable[Any] | None = None):
        return self.adapter.execute(sql, list(params or []))

    # ------------------------------------------------------------------ #
    # Persistence helpers
    # ------------------------------------------------------------------ #
    def _require_registered(self, model: Type[Model]) -> None:
        if model not in self.registry:
            raise RelationshipError(
                f"Model '{model.__name__}' is not registered with this session's registry."
            )

    def _validate(self, instance: Model) -> ValidationResult:
        self.hooks.fire("before_validate", instance, session=self)
        result = instance.validate()
        self.hooks.fire("after_validate", instance, session=self, result=result)
        return result

    def _write(self, instance: Model) -> None:
        if instance._persisted:
            self._update(instance)
        else:
            self._insert(instance)

    def _persist_new(self, instance: Model) -> None:
        result = self._validate(instance)
        if not result.ok:
            raise ValidationError.from_result(result)
        self._insert(instance)

    def _persist_dirty(self, instance: Model) -> None:
        result = self._validate(instance)
        if not result.ok:
            raise ValidationError.from_result(result)
        self._update(instance)

    def _insert(self, instance: Model) -> None:
        self._remember(instance)
        self.hooks.fire("before_save", instance, session=self, created=True)
        for field in instance._meta.get_fields():
            field.pre_save(instance, created=True)

        columns = []
        params = []
        for field in instance._meta.get_fields():
            value = getattr(instance, field.name, None)
            if field.primary_key and value is None:
                continue
            columns.append(self.dialect.quote_identifier(field.column_name()))
            params.append(field.to_db(value))

        table = self.dialect.format_table(instance._meta.table_name)
        placeholders = ", ".join(self.dialect.parameter_placeholder() for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        cursor = self.execute(sql, params)

        pk_field = instance._meta.primary_key
        if pk_field and getattr(instance, pk_field.name, None) is None:
            pk_value = self.adapter.last_insert_id(cursor, instance._meta.table_name, pk_field.column_name())
            setattr(instance, pk_field.name, pk_value)

        self._attach(instance)
        self.hooks.fire("after_save", instance, session=self, created=True)

    def _update(self, instance: Model) -> None:
        pk_field = instance._meta.primary_key
        if pk_field is None:
            raise ValueError(f"Model '{instance.__class__.__name__}' lacks a primary key.")
        pk_value = getattr(instance, pk_field.name)
        if pk_value is None:
            raise ValueError("Dirty instance missing primary key value.")
        if not instance.is_dirty():
            return

        self._remember(instance)
        self.hooks.fire("before_save", instance, session=self, created=False)
        for field in instance._meta.get_fields():
            field.pre_save(instance, created=False)

        changes: Dict[str, Any] = {}
        for field in instance._meta.get_fields():
            if field.primary_key:
                continue
            value = getattr(instance, field.name)
            if value != instance._initial_state.get(field.name):
                changes[field.name] = value
        if not changes:
            return

        compiler = SQLCompiler(
            instance.__class__, self.dialect, where=self._pk_q(instance)
        )
        sql, params = compiler.compile_update(changes)
        cursor = self.execute(sql, params)
        if cursor.rowcount == 0:
            raise StaleInstanceError(
                f"{instance.__class__.__name__} pk={pk_value!r} matched no row to update."
            )
        instance._initial_state = dict(instance._field_values)
        self.hooks.fire("after_save", instance, session=self, created=False)

    def _persist_deleted(self, instance: Model) -> None:
        if instance.pk is None or not instance._persisted:
            return
        self._remember(instance)
        self.hooks.fire("before_delete", instance, session=self)
        self._apply_delete_policies(instance)
        compiler = SQLCompiler(instance.__class__, self.dialect, where=self._pk_q(instance))
        sql, params = compiler.compile_delete()
        cursor = self.execute(sql, params)
        if cursor.rowcount == 0:
            raise StaleInstanceError(
                f"{instance.__class__.__name__} pk={instance.pk!r} matched no row to delete."
            )
        self.identity_map.remove(instance)
        instance._persisted = False
        instance._related_cache.clear()
        self.hooks.fire("after_delete", instance, session=self)

    def _apply_delete_policies(self, instance: Model) -> None:
        for resolved in self.registry.relations_of(instance.__class__):
            fk_name = resolved.foreign_key.require_name()
            children = self.query(resolved.target).filter(**{fk_name: instance.pk})
            if resolved.on_delete is OnDelete.RESTRICT:
                count = children.count()
                if count:
                    raise DeleteRestrictedError(instance, resolved.name, count)
            elif resolved.on_delete is OnDelete.CASCADE:
                for child in children.order_by(*resolved.ordering):
                    self._persist_deleted(child)
            elif resolved.on_delete is OnDelete.NULLIFY:
                sql, params = children._compiler().compile_update({fk_name: None})
                self.execute(sql, params)
                for child in self.identity_map.instances_of(resolved.target):
                    if getattr(child, fk_name) == instance.pk:
                        self._remember(child)
                        setattr(child, fk_name, None)
                        child._initial_state[fk_name] = None

    def _pk_q(self, instance: Model) -> Q:
        pk_field = instance._meta.primary_key
        return Q(**{pk_field.name: instance.pk})

    def _attach(self, instance: Model) -> None:
        instance._initial_state = dict(instance._field_values)
        instance._persisted = True
        instance._session = self
        self.identity_map.add(instance)

    def _remember(self, instance: Model) -> None:
        # Captured before a write; restored if the enclosing scope rolls back.
        field_values = dict(instance._field_values)
        initial_state = dict(instance._initial_state)
        persisted = instance._persisted
        owner = instance._session
        mapped = instance in self.identity_map

        def restore() -> None:
            if instance in self.identity_map:
                self.identity_map.remove(instance)
            instance._field_values.clear()
            instance._field_values.update(field_values)
            instance._initial_state = dict(initial_state)
            instance._persisted = persisted
            instance._session = owner
            instance._related_cache.clear()
            if mapped:
                self.identity_map.add(instance)

        self.transaction_manager.on_rollback(restore)

    def _is_rejected(self, instance: Model) -> bool:
        return any(obj is instance for obj in self._rejected)

    def _forget_rejected(self, instance: Model) -> None:
        self._rejected = [obj for obj in self._rejected if obj is not instance]

    def _materialize(self, model: Type[TModel], row: Dict[str, Any]) -> TModel:
        columns = {field.column_name(): field.name for field in model._meta.get_fields()}
        data = {columns.get(key, key): value for key, value in row.items()}
        pk_field = model._meta.primary_key
        if pk_field is not None:
            existing = self.identity_map.get(model, data.get(pk_field.name))
            if existing is not None:
                return existing
        instance = model(**data)
        self._attach(instance)
        return instance
