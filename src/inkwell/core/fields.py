"""
Field definitions and descriptors for Inkwell models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Sequence, cast

from ..validation.validators import LengthValidator, PresenceValidator

if TYPE_CHECKING:
    from .model import Model


class FieldError(Exception):
    """Internal exception for field configuration issues."""


class Field:
    """
    Base class for model field descriptors.

    Fields manage attribute storage on model instances and retain metadata
    required for schema generation and validation. ``None`` may always be
    assigned; nullability and presence are checked by the validation pipeline
    so that invalid data is reported rather than raised.
    """

    _creation_counter = 0
    generated = False

    def __init__(
        self,
        *,
        primary_key: bool = False,
        unique: bool = False,
        nullable: bool = True,
        required: bool = False,
        default: Any = None,
        db_type: Optional[str] = None,
        db_column: Optional[str] = None,
        choices: Optional[Sequence[Any]] = None,
        validators: Optional[Iterable[Callable[[Any], None]]] = None,
    ) -> None:
        self.primary_key = primary_key
        self.unique = unique
        self.required = required
        self.nullable = nullable and not required
        self.default = default
        self.db_type = db_type
        self.db_column = db_column
        self.choices = tuple(choices) if choices is not None else None
        self.validators = list(validators or [])
        if required and not any(isinstance(v, PresenceValidator) for v in self.validators):
            self.validators.insert(0, PresenceValidator())

        self.model: type["Model"] | None = None  # Will be set during contribute_to_class
        self.name: str | None = None
        self.creation_counter = Field._creation_counter
        Field._creation_counter += 1

    # Descriptor protocol -------------------------------------------------
    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self

        model_instance = cast("Model", instance)
        return model_instance._field_values.get(self.require_name())

    def __set__(self, instance: object, value: Any) -> None:
        model_instance = cast("Model", instance)
        name = self.require_name()
        if value is None:
            model_instance._field_values[name] = None
            return

        if self.choices and value not in self.choices:
            raise ValueError(f"Value '{value}' for field '{name}' not in choices {self.choices}")

        model_instance._field_values[name] = self.to_python(value)

    # Metadata helpers ----------------------------------------------------
    def bind(self, model: type["Model"], name: str) -> None:
        self.model = model
        self.name = name
        if self.db_column is None:
            self.db_column = name

    def contribute_to_class(self, model: type["Model"], name: str) -> None:
        """
        Attach the field to the model class as a descriptor.
        """
        self.bind(model, name)
        setattr(model, name, self)

    def require_name(self) -> str:
        if self.name is None:
            raise FieldError("Field name is not set.")
        return self.name

    def column_name(self) -> str:
        if self.db_column:
            return self.db_column
        return self.require_name()

    # Conversion ----------------------------------------------------------
    def get_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_python(self, value: Any) -> Any:
        return value

    def to_db(self, value: Any) -> Any:
        return value

    def pre_save(self, instance: "Model", *, created: bool) -> None:
        """
        Adjust the instance value right before it is written.
        """
        return None

    def __repr__(self) -> str:
        model = self.model.__name__ if self.model else "?"
        return f"<{self.__class__.__name__} {model}.{self.name}>"


class AutoField(Field):
    """
    Auto-incrementing integer field used as default primary key.
    """

    generated = True

    def __init__(self) -> None:
        super().__init__(primary_key=True, nullable=False, db_type="INTEGER")

    def to_python(self, value: Any) -> int | None:
        if value is None:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value '{value}' for AutoField") from exc


class IntegerField(Field):
    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "INTEGER")
        super().__init__(**kwargs)

    def to_python(self, value: Any) -> int | None:
        if value is None:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer value '{value}'") from exc


class StringField(Field):
    """
    Bounded text column. ``max_length`` is enforced by validation, not on
    assignment.
    """

    def __init__(self, *, max_length: int | None = 255, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "TEXT")
        super().__init__(**kwargs)
        self.max_length = max_length
        if max_length:
            self.validators.append(LengthValidator(maximum=max_length))

    def to_python(self, value: Any) -> str | None:
        if value is None:
            return value
        if isinstance(value, (list, tuple, set, dict, bytes)):
            raise ValueError(f"Invalid value {value!r} for {type(self).__name__}; expected text")
        return str(value)


class TextField(StringField):
    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("max_length", None)
        super().__init__(**kwargs)


class DateTimeField(Field):
    """
    Timezone-aware datetime stored as ISO-8601 text.

    ``auto_now_add`` stamps the value on insert, ``auto_now`` on every write.
    """

    def __init__(
        self, *, auto_now: bool = False, auto_now_add: bool = False, **kwargs: Any
    ) -> None:
        kwargs.setdefault("db_type", "TEXT")
        super().__init__(**kwargs)
        self.auto_now = auto_now
        self.auto_now_add = auto_now_add

    def to_python(self, value: Any) -> datetime | None:
        if value is None:
            return value
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid datetime value {value!r} for field '{self.name}'"
                ) from exc
        raise ValueError(f"Expected datetime for field '{self.name}', received {value!r}")

    def to_db(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def pre_save(self, instance: "Model", *, created: bool) -> None:
        name = self.require_name()
        if self.auto_now or (self.auto_now_add and created and getattr(instance, name) is None):
            setattr(instance, name, datetime.now(timezone.utc))
