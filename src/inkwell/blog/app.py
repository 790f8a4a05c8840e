"""
Wiring helpers for running the blog models against a database.
"""

from __future__ import annotations

from typing import Optional

from inkwell.adapters import SQLiteAdapter
from inkwell.core import ModelRegistry
from inkwell.persistence import Session
from inkwell.schema import SchemaBuilder
from inkwell.utils import get_logger, resolve_database_url

from .models import Comment, Post

logger = get_logger("blog.app")


def build_registry() -> ModelRegistry:
    """
    Registry holding the blog models, with every relation checked.
    """

    registry = ModelRegistry(Post, Comment)
    registry.check()
    return registry


def bootstrap_session(dsn: Optional[str] = None, *, registry: Optional[ModelRegistry] = None) -> Session:
    """
    Create a SQLite-backed session and ensure the blog schema exists.

    The DSN falls back to ``INKWELL_DATABASE_URL`` and then to an in-memory
    database.
    """

    registry = registry or build_registry()
    adapter = SQLiteAdapter()
    session = Session(adapter, registry=registry, dsn=resolve_database_url(dsn))
    builder = SchemaBuilder(adapter.dialect, registry)
    builder.create_all(adapter)
    logger.info("Blog schema ready on %s", session.connection_config.descriptive_label())
    return session
