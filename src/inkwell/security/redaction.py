"""Masking of secrets before values reach log records or DSN labels."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

REDACTED_VALUE = "***"

SENSITIVE_MARKERS = frozenset(
    {
        "api_key",
        "apikey",
        "authorization",
        "bearer",
        "credential",
        "passwd",
        "password",
        "private_key",
        "secret",
        "token",
    }
)


def looks_sensitive(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in SENSITIVE_MARKERS)


def redact_mapping(values: Mapping[str, Any]) -> dict[str, Any]:
    """
    Copy of ``values`` with every entry under a sensitive key masked.
    """
    return {key: redact_value(value, key=key) for key, value in values.items()}


def redact_value(value: Any, *, key: str | None = None) -> Any:
    if key is not None and looks_sensitive(str(key)):
        return REDACTED_VALUE
    if isinstance(value, Mapping):
        return redact_mapping(value)
    if isinstance(value, (list, tuple)):
        return type(value)(redact_value(item) for item in value)
    if isinstance(value, str) and looks_sensitive(value):
        return REDACTED_VALUE
    return value


def redact_params(params: Iterable[Any]) -> list[Any]:
    """
    Bound SQL parameters as they may be logged.
    """
    return [redact_value(value) for value in params]
