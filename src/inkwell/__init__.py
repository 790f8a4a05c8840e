"""
Inkwell public package initialization.

This module exposes the primary public APIs.
"""

from .core.fields import (  # noqa: F401
    AutoField,
    DateTimeField,
    IntegerField,
    StringField,
    TextField,
)
from .core.model import Model, ModelConfigurationError  # noqa: F401
from .core.registry import ModelRegistry  # noqa: F401
from .core.relations import (  # noqa: F401
    DeleteRestrictedError,
    ForeignKey,
    HasMany,
    OnDelete,
    RelationshipError,
)
from .hooks import HookDispatcher  # noqa: F401
from .persistence import Repository, SaveResult, Session, StaleInstanceError  # noqa: F401
from .query import Q, QuerySet  # noqa: F401
from .schema import SchemaBuilder  # noqa: F401
from .validation import ValidationError, ValidationErrors, ValidationResult  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "Model",
    "AutoField",
    "DateTimeField",
    "IntegerField",
    "StringField",
    "TextField",
    "ForeignKey",
    "HasMany",
    "OnDelete",
    "ModelRegistry",
    "ModelConfigurationError",
    "RelationshipError",
    "DeleteRestrictedError",
    "HookDispatcher",
    "Session",
    "StaleInstanceError",
    "Repository",
    "SaveResult",
    "QuerySet",
    "Q",
    "SchemaBuilder",
    "ValidationError",
    "ValidationErrors",
    "ValidationResult",
]
