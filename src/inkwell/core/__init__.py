"""
Core building blocks for Inkwell models and metadata handling.
"""

from .fields import (
    AutoField,
    DateTimeField,
    Field,
    FieldError,
    IntegerField,
    StringField,
    TextField,
)
from .model import Model, ModelConfigurationError, ModelMeta, ModelOptions
from .registry import ModelRegistry, ResolvedRelation
from .relations import (
    DeleteRestrictedError,
    ForeignKey,
    HasMany,
    OnDelete,
    RelatedCollection,
    RelationshipError,
)

__all__ = [
    "AutoField",
    "DateTimeField",
    "DeleteRestrictedError",
    "Field",
    "FieldError",
    "ForeignKey",
    "HasMany",
    "IntegerField",
    "Model",
    "ModelConfigurationError",
    "ModelMeta",
    "ModelOptions",
    "ModelRegistry",
    "OnDelete",
    "RelatedCollection",
    "RelationshipError",
    "ResolvedRelation",
    "StringField",
    "TextField",
]
