"""
Structured outcomes returned instead of raising on invalid data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, Optional, TypeVar

from .errors import ValidationError, ValidationErrors

if TYPE_CHECKING:
    from ..core.model import Model

TModel = TypeVar("TModel", bound="Model")


@dataclass
class ValidationResult(Generic[TModel]):
    """
    Success-with-entity or failure-with-field-errors.
    """

    instance: Optional[TModel]
    errors: ValidationErrors = field(default_factory=ValidationErrors)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> TModel:
        """
        Return the instance or raise ``ValidationError`` for a failed result.
        """
        if not self.ok:
            raise ValidationError.from_result(self)
        if self.instance is None:
            raise ValueError("Successful result carries no instance.")
        return self.instance

    @classmethod
    def success(cls, instance: TModel) -> "ValidationResult[TModel]":
        return cls(instance=instance)

    @classmethod
    def failure(
        cls, instance: Optional[TModel], errors: ValidationErrors
    ) -> "ValidationResult[TModel]":
        return cls(instance=instance, errors=errors)
