"""
Environment-driven settings shared across Inkwell packages.
"""

from __future__ import annotations

import logging
import os

DATABASE_URL_ENV = "INKWELL_DATABASE_URL"
SLOW_QUERY_ENV = "INKWELL_SLOW_QUERY_MS"
LOG_LEVEL_ENV = "INKWELL_LOG_LEVEL"

DEFAULT_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_SLOW_QUERY_MS = 200


def resolve_slow_query_ms(*, default: int = DEFAULT_SLOW_QUERY_MS, override: int | None = None) -> int:
    """
    Pick the slow query threshold: explicit override, then environment, then default.
    """
    if override is not None:
        return override
    raw = os.getenv(SLOW_QUERY_ENV)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{SLOW_QUERY_ENV} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{SLOW_QUERY_ENV} must be non-negative, got {value}")
    return value


def resolve_log_level(default: int = logging.INFO) -> int:
    raw = os.getenv(LOG_LEVEL_ENV)
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    if isinstance(level, int):
        return level
    return default


def resolve_database_url(dsn: str | None = None) -> str:
    if dsn:
        return dsn
    return os.getenv(DATABASE_URL_ENV) or DEFAULT_DATABASE_URL
