"""
Model base classes and metadata orchestration for Inkwell.

Defining a model only collects its metadata. Nothing is registered globally;
models become known to persistence code through an explicit
:class:`~inkwell.core.registry.ModelRegistry`.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Type, TypeVar

from ..utils import camel_to_snake
from .fields import AutoField, Field
from .relations import HasMany

if TYPE_CHECKING:
    from ..persistence.session import Session
    from ..validation import ValidationErrors, ValidationResult


class ModelConfigurationError(Exception):
    """Raised when a model class is misconfigured."""


@dataclass
class ModelOptions:
    """
    Container for model metadata calculated by :class:`ModelMeta`.
    """

    model: Type["Model"]
    table_name: str = ""
    abstract: bool = False
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    primary_key: Optional[Field] = None
    has_many: "OrderedDict[str, HasMany]" = field(default_factory=OrderedDict)

    def add_field(self, field_obj: Field) -> None:
        if field_obj.name in self.fields or field_obj.name in self.has_many:
            raise ModelConfigurationError(
                f"Duplicate field name '{field_obj.name}' on model '{self.model.__name__}'"
            )
        self.fields[field_obj.name] = field_obj
        if field_obj.primary_key:
            if self.primary_key and self.primary_key is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple primary keys defined on model '{self.model.__name__}'"
                )
            self.primary_key = field_obj

    def add_relation(self, relation: HasMany) -> None:
        if relation.name in self.fields or relation.name in self.has_many:
            raise ModelConfigurationError(
                f"Duplicate field name '{relation.name}' on model '{self.model.__name__}'"
            )
        self.has_many[relation.name] = relation

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown field '{name}' on model '{self.model.__name__}'") from exc

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()


TModel = TypeVar("TModel", bound="Model")


class ModelMeta(type):
    """
    Metaclass responsible for collecting fields and establishing metadata.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "ModelMeta":
        # Allow creation of the base Model class without processing fields.
        if name == "Model" and bases == (object,):
            return super().__new__(mcls, name, bases, attrs)

        declared: Dict[str, Field | HasMany] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, (Field, HasMany)):
                declared[attr_name] = attrs.pop(attr_name)

        cls = super().__new__(mcls, name, bases, attrs)

        meta = getattr(cls, "Meta", None)
        table_name = camel_to_snake(name)
        abstract = False
        if meta:
            table_name = getattr(meta, "table", table_name)
            abstract = getattr(meta, "abstract", False)

        cls._meta = ModelOptions(model=cls, table_name=table_name, abstract=abstract)

        fields = [(n, v) for n, v in declared.items() if isinstance(v, Field)]
        for attr_name, field_obj in sorted(fields, key=lambda item: item[1].creation_counter):
            field_obj.contribute_to_class(cls, attr_name)
            cls._meta.add_field(field_obj)

        for attr_name, relation in declared.items():
            if isinstance(relation, HasMany):
                relation.contribute_to_class(cls, attr_name)
                cls._meta.add_relation(relation)

        if not cls._meta.primary_key and not cls._meta.abstract:
            if "id" in cls._meta.fields:
                raise ModelConfigurationError(
                    f"Model '{cls.__name__}' defines a field named 'id' but no primary key. "
                    "Either set primary_key=True on that field or define a different name."
                )
            auto_field = AutoField()
            auto_field.contribute_to_class(cls, "id")
            cls._meta.add_field(auto_field)
            cls._meta.fields = OrderedDict(
                sorted(
                    cls._meta.fields.items(),
                    key=lambda item: (0 if item[0] == "id" else 1, item[1].creation_counter),
                )
            )

        return cls


class Model(metaclass=ModelMeta):
    """
    Base model providing data container and validation behaviour.
    Persistence operations are supplied by :class:`~inkwell.persistence.Session`.
    """

    _meta: ModelOptions

    def __init__(self, **kwargs: Any) -> None:
        self._field_values: Dict[str, Any] = {}
        self._initial_state: Dict[str, Any] = {}
        self._related_cache: Dict[str, Any] = {}
        self._session: "Session | None" = None
        self._persisted = False
        self._errors: "ValidationErrors | None" = None

        unknown = set(kwargs) - set(self._meta.fields)
        if unknown:
            raise TypeError(
                f"{self.__class__.__name__} got unexpected field(s): {', '.join(sorted(unknown))}"
            )

        for field_obj in self._meta.get_fields():
            if field_obj.name in kwargs:
                setattr(self, field_obj.name, kwargs[field_obj.name])
            elif field_obj.has_default:
                setattr(self, field_obj.name, field_obj.get_default())

        # Retain snapshot for simple dirty tracking
        self._initial_state = dict(self._field_values)

    @classmethod
    def build(cls: Type[TModel], **values: Any) -> "ValidationResult[TModel]":
        """
        Validated constructor: success with the instance, or failure with
        field errors. Never raises for invalid values.
        """
        instance = cls(**values)
        return instance.validate()

    def __repr__(self) -> str:
        field_parts = ", ".join(
            f"{field.name}={repr(self._field_values.get(field.name))}"
            for field in self._meta.get_fields()
            if field.name in self._field_values
        )
        return f"<{self.__class__.__name__} {field_parts}>"

    @property
    def pk(self) -> Any:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Model '{self.__class__.__name__}' does not define a primary key."
            )
        return getattr(self, self._meta.primary_key.name)

    def to_dict(self) -> Dict[str, Any]:
        return {field.name: getattr(self, field.name) for field in self._meta.get_fields()}

    def is_dirty(self) -> bool:
        return any(
            self._field_values.get(name) != self._initial_state.get(name)
            for name in self._field_values
        )

    def is_persisted(self) -> bool:
        return self._persisted

    # Validation --------------------------------------------------------
    @property
    def errors(self) -> "ValidationErrors":
        if self._errors is None:
            from ..validation import ValidationErrors

            self._errors = ValidationErrors()
        return self._errors

    def validate(self) -> "ValidationResult":
        from ..validation import validate_instance

        result = validate_instance(self)
        self._errors = result.errors
        return result

    def is_valid(self) -> bool:
        return self.validate().ok

    def full_clean(self) -> None:
        from ..validation import ValidationError

        result = self.validate()
        if not result.ok:
            raise ValidationError.from_result(result)

    def clean(self) -> None:
        """
        Hook for subclasses to implement model-level validation.
        """
        return None
