"""
Validation utilities exposed at the package level.
"""

from .errors import NON_FIELD_ERRORS, ValidationError, ValidationErrors
from .pipeline import validate_instance
from .result import ValidationResult
from .validators import (
    BLANK_MESSAGE,
    LengthValidator,
    PresenceValidator,
    RegexValidator,
    is_blank,
)

__all__ = [
    "BLANK_MESSAGE",
    "NON_FIELD_ERRORS",
    "LengthValidator",
    "PresenceValidator",
    "RegexValidator",
    "ValidationError",
    "ValidationErrors",
    "ValidationResult",
    "is_blank",
    "validate_instance",
]
