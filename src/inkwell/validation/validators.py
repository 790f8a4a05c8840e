"""
Built-in validator helpers.

Validators are callables raising ``ValueError`` with a short message; the
pipeline files that message under the field name.
"""

from __future__ import annotations

import re
from typing import Any, Protocol


BLANK_MESSAGE = "can't be blank"


class Validator(Protocol):
    def __call__(self, value: Any) -> None: ...


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


class PresenceValidator:
    """
    Rejects ``None``, empty or whitespace-only strings, and empty collections.
    """

    runs_on_none = True

    def __init__(self, message: str | None = None) -> None:
        self.message = message or BLANK_MESSAGE

    def __call__(self, value: Any) -> None:
        if is_blank(value):
            raise ValueError(self.message)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PresenceValidator) and other.message == self.message

    def __repr__(self) -> str:
        return f"PresenceValidator(message={self.message!r})"


class LengthValidator:
    def __init__(
        self,
        *,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> None:
        if minimum is None and maximum is None:
            raise ValueError("LengthValidator requires minimum or maximum.")
        self.minimum = minimum
        self.maximum = maximum

    def __call__(self, value: Any) -> None:
        if value is None:
            return
        length = len(value)
        if self.minimum is not None and length < self.minimum:
            raise ValueError(f"is too short (minimum is {self.minimum} characters)")
        if self.maximum is not None and length > self.maximum:
            raise ValueError(f"is too long (maximum is {self.maximum} characters)")


class RegexValidator:
    def __init__(self, pattern: str, message: str | None = None) -> None:
        self.pattern = re.compile(pattern)
        self.message = message or "is invalid"

    def __call__(self, value: Any) -> None:
        if value is None:
            return
        if not isinstance(value, str):
            raise ValueError("must be a string")
        if not self.pattern.match(value):
            raise ValueError(self.message)
