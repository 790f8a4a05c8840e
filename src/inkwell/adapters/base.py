"""
Adapter protocol and connection configuration for Inkwell.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, TypeVar

from ..dialects.base import Dialect
from ..security.dsns import DSNConfig, parse_dsn


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised for unusable connection settings."""


class AdapterConnectionError(AdapterError):
    """Raised when a connection cannot be opened or is missing."""


class AdapterExecutionError(AdapterError):
    """Raised when the database rejects a statement."""


T = TypeVar("T")

_BOOLEAN_WORDS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


def _as_bool(raw: str) -> bool:
    return _BOOLEAN_WORDS[raw.strip().lower()]


def _take_option(
    options: Dict[str, str], key: str, convert: Callable[[str], T]
) -> Optional[T]:
    """
    Remove ``key`` from the DSN options and convert it, if present.
    """
    if key not in options:
        return None
    raw = options.pop(key)
    try:
        return convert(raw)
    except (KeyError, ValueError) as exc:
        raise AdapterConfigurationError(f"Invalid value for '{key}': {raw!r}") from exc


@dataclass
class ConnectionConfig:
    """
    Settings an adapter needs to open a connection.

    ``timeout``, ``autocommit`` and ``isolation_level`` may be given as DSN
    query options; remaining options are kept in ``options`` for the driver.
    """

    url: str
    autocommit: bool = False
    isolation_level: Optional[str] = None
    timeout: Optional[float] = None
    options: Optional[Dict[str, Any]] = None
    dsn: Optional[DSNConfig] = None
    source: Optional[str] = None

    @classmethod
    def from_dsn(cls, dsn: str, **overrides: Any) -> "ConnectionConfig":
        try:
            parsed = parse_dsn(dsn)
        except ValueError as exc:
            raise AdapterConfigurationError(str(exc)) from exc

        remaining = dict(parsed.query)
        settings: Dict[str, Any] = {
            "autocommit": _take_option(remaining, "autocommit", _as_bool),
            "timeout": _take_option(remaining, "timeout", float),
            "isolation_level": _take_option(remaining, "isolation_level", str),
        }
        for key in list(settings):
            if key in overrides:
                settings[key] = overrides.pop(key)
        if settings["autocommit"] is None:
            settings["autocommit"] = False

        remaining.update(overrides.pop("options", None) or {})
        return cls(url=dsn, dsn=parsed, options=remaining or None, **settings, **overrides)

    @classmethod
    def from_env(cls, env_var: str, **overrides: Any) -> "ConnectionConfig":
        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **overrides)

    def redacted_dsn(self) -> str:
        return self.dsn.redacted() if self.dsn else self.url

    def descriptive_label(self) -> str:
        """
        Loggable name for this connection, e.g. ``INKWELL_DATABASE_URL (sqlite:///blog.db)``.
        """
        label = self.redacted_dsn()
        return f"{self.source} ({label})" if self.source else label


class DatabaseAdapter(Protocol):
    """
    Operations the session layer needs from a database driver.

    ``execute`` returns a DB-API cursor whose rows support access by column
    name. ``begin``/``commit``/``rollback`` control the outermost transaction;
    savepoints are issued through ``execute``.
    """

    dialect: Dialect

    def connect(self, config: ConnectionConfig) -> Any: ...

    def close(self) -> None: ...

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any: ...

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any: ...
