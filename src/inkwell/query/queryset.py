"""
QuerySet implementation providing a chainable query API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Tuple

from .compiler import SQLCompiler
from .expressions import Q

if TYPE_CHECKING:
    from ..core.model import Model
    from ..persistence.session import Session


class QuerySet:
    """
    Lazy, chainable query over one model. Execution goes through the bound
    session; each chaining call returns a new QuerySet.
    """

    def __init__(
        self,
        model: type["Model"],
        *,
        session: "Session | None" = None,
        dialect=None,
        where: Optional[Q] = None,
        ordering: Tuple[str, ...] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        prefetch_related: Tuple[str, ...] = (),
    ) -> None:
        self.model = model
        self._session = session
        if dialect is None:
            if session is not None:
                dialect = session.dialect
            else:
                from ..dialects.sqlite import SQLiteDialect

                dialect = SQLiteDialect()
        self.dialect = dialect
        self._where = where or Q()
        self._ordering = ordering
        self._limit = limit
        self._offset = offset
        self._prefetch_related = prefetch_related

    # Public API --------------------------------------------------------
    def filter(self, **lookups: Any) -> "QuerySet":
        return self._clone(where=self._add_q(Q(**lookups)))

    def exclude(self, **lookups: Any) -> "QuerySet":
        return self._clone(where=self._add_q(~Q(**lookups)))

    def where(self, q_object: Q) -> "QuerySet":
        return self._clone(where=self._add_q(q_object))

    def order_by(self, *fields: str) -> "QuerySet":
        for name in fields:
            self.model._meta.get_field(name.lstrip("-"))
        return self._clone(ordering=tuple(fields))

    def limit(self, value: int) -> "QuerySet":
        if value < 0:
            raise ValueError("limit() requires a non-negative value.")
        return self._clone(limit=value)

    def offset(self, value: int) -> "QuerySet":
        if value < 0:
            raise ValueError("offset() requires a non-negative value.")
        return self._clone(offset=value)

    def prefetch_related(self, *relations: str) -> "QuerySet":
        if not relations:
            raise ValueError("prefetch_related() requires at least one relationship name.")
        for name in relations:
            if name not in self.model._meta.has_many:
                raise ValueError(
                    f"Cannot prefetch '{name}': '{self.model.__name__}' has no such has-many relation."
                )
        combined = tuple(dict.fromkeys(self._prefetch_related + relations))
        return self._clone(prefetch_related=combined)

    def to_sql(self) -> tuple[str, list[Any]]:
        return self._compiler().compile()

    def all(self) -> List["Model"]:
        return list(self)

    def first(self) -> Optional["Model"]:
        qs = self if self._ordering else self.order_by(self._pk_name())
        for instance in qs.limit(1):
            return instance
        return None

    def count(self) -> int:
        session = self._require_session()
        sql, params = self._compiler().compile_count()
        return session.execute(sql, params).fetchone()[0]

    def exists(self) -> bool:
        return self.count() > 0

    def __iter__(self) -> Iterator["Model"]:
        session = self._require_session()
        sql, params = self.to_sql()
        cursor = session.execute(sql, params)
        instances = [session._materialize(self.model, dict(row)) for row in cursor.fetchall()]
        if self._prefetch_related and instances:
            for relation in self._prefetch_related:
                self._prefetch_has_many(session, instances, relation)
        return iter(instances)

    def __repr__(self) -> str:
        sql, params = self.to_sql()
        return f"<QuerySet {self.model.__name__}: {sql} {params!r}>"

    # Internal helpers --------------------------------------------------
    def _require_session(self) -> "Session":
        if self._session is None:
            raise RuntimeError(
                "QuerySet execution requires a bound Session. Use Session.query(model)."
            )
        return self._session

    def _pk_name(self) -> str:
        pk = self.model._meta.primary_key
        if pk is None:
            raise RuntimeError(f"Model '{self.model.__name__}' has no primary key.")
        return pk.require_name()

    def _compiler(self) -> SQLCompiler:
        return SQLCompiler(
            model=self.model,
            dialect=self.dialect,
            where=self._where,
            ordering=self._ordering,
            limit=self._limit,
            offset=self._offset,
        )

    def _add_q(self, q_object: Q) -> Q:
        if self._where.is_empty():
            return q_object
        return self._where & q_object

    def _clone(self, **overrides: Any) -> "QuerySet":
        params = {
            "session": self._session,
            "dialect": self.dialect,
            "where": overrides.get("where", self._where),
            "ordering": overrides.get("ordering", self._ordering),
            "limit": overrides.get("limit", self._limit),
            "offset": overrides.get("offset", self._offset),
            "prefetch_related": overrides.get("prefetch_related", self._prefetch_related),
        }
        return QuerySet(self.model, **params)

    def _prefetch_has_many(
        self, session: "Session", instances: List["Model"], relation: str
    ) -> None:
        # One query for all parents, bucketed by foreign key.
        resolved = session.registry.relation(self.model, relation)
        parent_pks = [obj.pk for obj in instances if obj.pk is not None]
        if not parent_pks:
            return
        fk_name = resolved.foreign_key.require_name()
        children = (
            QuerySet(resolved.target, session=session)
            .filter(**{f"{fk_name}__in": parent_pks})
            .order_by(*resolved.ordering)
        )
        bucket: dict[Any, list[Any]] = {pk: [] for pk in parent_pks}
        for child in children:
            bucket.setdefault(getattr(child, fk_name), []).append(child)
        for obj in instances:
            if obj.pk is not None:
                obj._related_cache[relation] = bucket.get(obj.pk, [])
