"""
Utility helpers shared across Inkwell packages.
"""

from .config import resolve_database_url, resolve_log_level, resolve_slow_query_ms
from .logging import configure_logging, get_logger, time_call
from .naming import camel_to_snake, humanize

__all__ = [
    "camel_to_snake",
    "configure_logging",
    "get_logger",
    "humanize",
    "resolve_database_url",
    "resolve_log_level",
    "resolve_slow_query_ms",
    "time_call",
]
