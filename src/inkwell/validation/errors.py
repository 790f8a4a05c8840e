"""
Validation error containers for Inkwell.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping

from ..utils.naming import humanize

NON_FIELD_ERRORS = "__all__"


class ValidationErrors:
    """
    Ordered field-to-messages mapping collected by the validation pipeline.
    """

    def __init__(self, errors: Mapping[str, List[str]] | None = None) -> None:
        self._errors: Dict[str, List[str]] = {}
        if errors:
            self.merge(errors)

    def add(self, field: str, message: str) -> None:
        messages = self._errors.setdefault(field, [])
        if message not in messages:
            messages.append(message)

    def merge(self, errors: Mapping[str, List[str]]) -> None:
        for field, messages in errors.items():
            for message in messages:
                self.add(field, message)

    def clear(self) -> None:
        self._errors.clear()

    def as_dict(self) -> Dict[str, List[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def full_messages(self) -> List[str]:
        """
        Human readable messages, e.g. ``"Title can't be blank"``.
        """
        result = []
        for field, messages in self._errors.items():
            for message in messages:
                if field == NON_FIELD_ERRORS:
                    result.append(message)
                else:
                    result.append(f"{humanize(field)} {message}")
        return result

    def __getitem__(self, field: str) -> List[str]:
        return list(self._errors.get(field, []))

    def __contains__(self, field: object) -> bool:
        return field in self._errors

    def __iter__(self) -> Iterator[str]:
        return iter(self._errors)

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ValidationErrors):
            return self._errors == other._errors
        if isinstance(other, Mapping):
            return self._errors == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ValidationErrors({self._errors!r})"


class ValidationError(Exception):
    """
    Aggregated validation error storing field-to-messages mapping.

    Raised by the strict code paths (``full_clean``, ``Session.flush``); the
    result-returning paths hand the same messages back as ``ValidationErrors``.
    """

    def __init__(self, errors: Mapping[str, List[str]]) -> None:
        self.errors: Dict[str, List[str]] = {
            key: list(messages) for key, messages in errors.items()
        }
        message = self._format_message()
        super().__init__(message)

    @classmethod
    def from_result(cls, result) -> "ValidationError":
        return cls(result.errors.as_dict())

    def _format_message(self) -> str:
        segments = []
        for field, messages in self.errors.items():
            prefix = field if field != NON_FIELD_ERRORS else "non-field"
            combined = "; ".join(messages)
            segments.append(f"{prefix}: {combined}")
        return "; ".join(segments)
