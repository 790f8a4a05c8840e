"""
Repository objects giving explicit, per-model data access over a session.
"""

from __future__ import annotations

from typing import Any, Generic, List, Optional, Type, TypeVar

from ..core.model import Model
from ..query import QuerySet
from ..validation import ValidationResult
from .session import Session

TModel = TypeVar("TModel", bound=Model)


class Repository(Generic[TModel]):
    """
    Data-access object for one model class.
    """

    model: Type[TModel]

    def __init__(self, session: Session, model: Optional[Type[TModel]] = None) -> None:
        if model is not None:
            self.model = model
        if getattr(self, "model", None) is None:
            raise TypeError(f"{self.__class__.__name__} needs a model class.")
        self.session = session

    def build(self, **values: Any) -> ValidationResult[TModel]:
        return self.model.build(**values)

    def create(self, **values: Any) -> ValidationResult[TModel]:
        return self.session.save(self.model(**values))

    def save(self, instance: TModel) -> ValidationResult[TModel]:
        return self.session.save(instance)

    def update(self, instance: TModel, **values: Any) -> ValidationResult[TModel]:
        for name, value in values.items():
            self.model._meta.get_field(name)
            setattr(instance, name, value)
        return self.session.save(instance)

    def get(self, pk: Any) -> Optional[TModel]:
        pk_field = self.model._meta.primary_key
        return self.session.get(self.model, **{pk_field.name: pk})

    def query(self) -> QuerySet:
        return self.session.query(self.model)

    def all(self) -> List[TModel]:
        pk_name = self.model._meta.primary_key.name
        return list(self.query().order_by(pk_name))

    def count(self) -> int:
        return self.query().count()

    def delete(self, instance: TModel) -> None:
        self.session.destroy(instance)
