"""
Validation pipeline used by models and sessions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import NON_FIELD_ERRORS, ValidationError, ValidationErrors
from .result import ValidationResult

if TYPE_CHECKING:
    from ..core.fields import Field
    from ..core.model import Model


def validate_instance(instance: "Model") -> ValidationResult:
    """
    Run field validators and the model ``clean`` hook, collecting every message.
    """
    errors = ValidationErrors()

    for field in instance._meta.get_fields():
        field_name = field.require_name()
        value = getattr(instance, field_name, None)
        _validate_field(field, value, errors)

    clean_method = getattr(instance, "clean", None)
    if callable(clean_method):
        try:
            clean_method()
        except ValidationError as exc:
            errors.merge(exc.errors)
        except ValueError as exc:
            errors.add(NON_FIELD_ERRORS, str(exc))

    if errors:
        return ValidationResult.failure(instance, errors)
    return ValidationResult.success(instance)


def _validate_field(field: "Field", value: Any, errors: ValidationErrors) -> None:
    field_name = field.require_name()
    if value is None:
        if field.primary_key and field.generated:
            return
        validators = [v for v in field.validators if getattr(v, "runs_on_none", False)]
        if not validators and not field.nullable:
            errors.add(field_name, "can't be null")
            return
    else:
        validators = list(field.validators)

    for validator in validators:
        try:
            validator(value)
        except ValueError as exc:
            errors.add(field_name, str(exc))
