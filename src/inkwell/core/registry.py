"""
Explicit model registry resolving relationship references.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple, Type

from ..hooks import HookDispatcher
from .relations import ForeignKey, HasMany, OnDelete, RelationshipError

if TYPE_CHECKING:
    from .model import Model


@dataclass(frozen=True)
class ResolvedRelation:
    """
    A has-many relation with both ends resolved to model classes.
    """

    source: Type["Model"]
    name: str
    target: Type["Model"]
    foreign_key: ForeignKey
    on_delete: OnDelete
    order_by: Tuple[str, ...]

    @property
    def ordering(self) -> Tuple[str, ...]:
        if self.order_by:
            return self.order_by
        pk = self.target._meta.primary_key
        return (pk.require_name(),) if pk is not None else ()


class ModelRegistry:
    """
    Set of models known to a persistence context.

    Constructed and passed explicitly to sessions; defining a model class has
    no side effect on any registry.
    """

    def __init__(self, *models: Type["Model"], hooks: Optional[HookDispatcher] = None) -> None:
        self._models: Dict[str, Type["Model"]] = {}
        self._relations: Dict[Tuple[Type["Model"], str], ResolvedRelation] = {}
        self.hooks = hooks or HookDispatcher()
        if models:
            self.register(*models)

    def register(self, *models: Type["Model"]) -> "ModelRegistry":
        for model in models:
            label = model.__name__
            existing = self._models.get(label)
            if existing is not None and existing is not model:
                raise RelationshipError(f"A different model named '{label}' is already registered.")
            self._models[label] = model
        self._relations.clear()
        return self

    def get(self, name: str) -> Type["Model"]:
        try:
            return self._models[name]
        except KeyError as exc:
            raise RelationshipError(f"Model '{name}' is not registered.") from exc

    def models(self) -> List[Type["Model"]]:
        return list(self._models.values())

    def __contains__(self, model: object) -> bool:
        if isinstance(model, str):
            return model in self._models
        return isinstance(model, type) and self._models.get(model.__name__) is model

    def __iter__(self) -> Iterator[Type["Model"]]:
        return iter(self.models())

    # Resolution ----------------------------------------------------------
    def resolve(self, target: Type["Model"] | str) -> Type["Model"]:
        if isinstance(target, type):
            return target
        return self.get(target.split(".")[-1])

    def foreign_key_target(self, field: ForeignKey) -> Type["Model"]:
        return self.resolve(field.to)

    def relation(self, model: Type["Model"], name: str) -> ResolvedRelation:
        key = (model, name)
        cached = self._relations.get(key)
        if cached is not None:
            return cached
        declared = model._meta.has_many.get(name)
        if declared is None:
            raise RelationshipError(f"'{model.__name__}' has no has-many relation named '{name}'.")
        resolved = self._resolve_relation(model, declared)
        self._relations[key] = resolved
        return resolved

    def relations_of(self, model: Type["Model"]) -> List[ResolvedRelation]:
        return [self.relation(model, name) for name in model._meta.has_many]

    def check(self) -> None:
        """
        Resolve every declared reference, raising on the first broken one.
        """
        for model in self.models():
            for field in model._meta.get_fields():
                if isinstance(field, ForeignKey):
                    self.foreign_key_target(field)
            self.relations_of(model)

    def _resolve_relation(self, model: Type["Model"], declared: HasMany) -> ResolvedRelation:
        target = self.resolve(declared.to)
        try:
            fk = target._meta.get_field(declared.foreign_key)
        except KeyError as exc:
            raise RelationshipError(
                f"{model.__name__}.{declared.name}: '{target.__name__}' has no field "
                f"'{declared.foreign_key}'."
            ) from exc
        if not isinstance(fk, ForeignKey):
            raise RelationshipError(
                f"{model.__name__}.{declared.name}: '{target.__name__}.{declared.foreign_key}' "
                "is not a ForeignKey."
            )
        if self.foreign_key_target(fk) is not model:
            raise RelationshipError(
                f"{model.__name__}.{declared.name}: '{target.__name__}.{declared.foreign_key}' "
                f"points at '{fk.target_label()}', not '{model.__name__}'."
            )
        if declared.on_delete is OnDelete.NULLIFY and not fk.nullable:
            raise RelationshipError(
                f"{model.__name__}.{declared.name}: NULLIFY requires "
                f"'{target.__name__}.{declared.foreign_key}' to be nullable."
            )
        for ordering in declared.order_by:
            target._meta.get_field(ordering.lstrip("-"))
        return ResolvedRelation(
            source=model,
            name=declared.name or "",
            target=target,
            foreign_key=fk,
            on_delete=declared.on_delete,
            order_by=declared.order_by,
        )
