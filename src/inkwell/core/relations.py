"""
Relationship declarations: belongs-to foreign keys and has-many collections.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Type

from .fields import Field

if TYPE_CHECKING:
    from ..persistence.session import Session
    from ..validation import ValidationResult
    from .model import Model


class RelationshipError(RuntimeError):
    pass


class DeleteRestrictedError(RelationshipError):
    """Raised when deleting a parent whose ``RESTRICT`` relation still has rows."""

    def __init__(self, instance: "Model", relation: str, count: int) -> None:
        self.instance = instance
        self.relation = relation
        self.count = count
        super().__init__(
            f"Cannot delete {instance.__class__.__name__} {instance.pk!r}: "
            f"{count} dependent {relation} exist"
        )


class OnDelete(str, Enum):
    """
    What happens to children when their parent is destroyed.
    """

    CASCADE = "cascade"
    NULLIFY = "nullify"
    RESTRICT = "restrict"


class ForeignKey(Field):
    """
    Belongs-to side of a one-to-many relationship.

    The attribute holds the referenced primary key. Assigning a model instance
    stores that instance's ``pk``.
    """

    def __init__(self, to: Type | str, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "INTEGER")
        kwargs.setdefault("nullable", False)
        super().__init__(**kwargs)
        self.to = to

    def __set__(self, instance, value):
        if hasattr(value, "pk") and hasattr(value, "_meta"):
            value = value.pk
        super().__set__(instance, value)

    def target_label(self) -> str:
        if isinstance(self.to, type):
            return self.to.__name__
        return self.to.split(".")[-1]


class HasMany:
    """
    Has-many side of a one-to-many relationship.

    ``foreign_key`` names the :class:`ForeignKey` on the target model pointing
    back here. ``on_delete`` has no default: callers decide what happens to
    children. Without ``order_by`` collections come back ordered by the
    target primary key.
    """

    def __init__(
        self,
        to: Type | str,
        *,
        foreign_key: str,
        on_delete: OnDelete,
        order_by: Sequence[str] | None = None,
    ) -> None:
        if not isinstance(on_delete, OnDelete):
            raise RelationshipError(f"on_delete must be an OnDelete member, got {on_delete!r}")
        self.to = to
        self.foreign_key = foreign_key
        self.on_delete = on_delete
        self.order_by = tuple(order_by or ())
        self.model: Optional[Type["Model"]] = None
        self.name: Optional[str] = None

    def contribute_to_class(self, model: Type["Model"], name: str) -> None:
        self.model = model
        self.name = name
        setattr(model, name, self)

    def target_label(self) -> str:
        if isinstance(self.to, type):
            return self.to.__name__
        return self.to.split(".")[-1]

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return RelatedCollection(instance, self)

    def __set__(self, instance, value) -> None:
        raise AttributeError(
            f"'{self.name}' is a has-many collection; use build() or create() to add rows."
        )

    def __repr__(self) -> str:
        model = self.model.__name__ if self.model else "?"
        return f"<HasMany {model}.{self.name} -> {self.target_label()}>"


class RelatedCollection:
    """
    Collection of children bound to one parent instance.

    Queries run through the session the parent was loaded or saved with.
    """

    def __init__(self, instance: "Model", relation: HasMany) -> None:
        self.instance = instance
        self.relation = relation

    @property
    def name(self) -> str:
        return self.relation.name or ""

    def _session(self) -> "Session":
        session = getattr(self.instance, "_session", None)
        if session is None:
            raise RelationshipError(
                f"{self.instance.__class__.__name__} is not attached to a session; "
                f"cannot load '{self.name}'."
            )
        return session

    def all(self) -> List["Model"]:
        cached = self.instance._related_cache.get(self.name)
        if cached is not None:
            return list(cached)
        if self.instance.pk is None:
            return []
        return self._session().related(self.instance, self.name)

    def count(self) -> int:
        cached = self.instance._related_cache.get(self.name)
        if cached is not None:
            return len(cached)
        if self.instance.pk is None:
            return 0
        return self._session().count_related(self.instance, self.name)

    def exists(self) -> bool:
        return self.count() > 0

    def build(self, **values: Any) -> "Model":
        """
        Instantiate a child pointing at the parent without saving it.
        """
        session = self._session()
        resolved = session.registry.relation(self.instance.__class__, self.name)
        values[resolved.foreign_key.require_name()] = self.instance
        child = resolved.target(**values)
        child._session = session
        return child

    def create(self, **values: Any) -> "ValidationResult":
        """
        Build a child and save it, returning the save result.
        """
        child = self.build(**values)
        result = self._session().save(child)
        if result.ok:
            self.instance._related_cache.pop(self.name, None)
        return result

    def reset(self) -> None:
        self.instance._related_cache.pop(self.name, None)

    def __iter__(self):
        return iter(self.all())

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, item: object) -> bool:
        return any(
            child is item or (type(child) is type(item) and child.pk == item.pk)
            for child in self.all()
        )

    def __repr__(self) -> str:
        return f"<RelatedCollection {self.instance.__class__.__name__}.{self.name}>"
