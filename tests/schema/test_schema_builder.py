import logging

import pytest

from inkwell.adapters import ConnectionConfig, SQLiteAdapter
from inkwell.core import (
    ForeignKey,
    HasMany,
    IntegerField,
    Model,
    ModelRegistry,
    OnDelete,
    RelationshipError,
    StringField,
)
from inkwell.dialects import SQLiteDialect
from inkwell.schema import SchemaBuilder

dialect = SQLiteDialect()


class User(Model):
    name = StringField(nullable=False)
    age = IntegerField(default=0)


class Album(Model):
    title = StringField(required=True)
    tracks = HasMany("Track", foreign_key="album", on_delete=OnDelete.CASCADE)


class Track(Model):
    name = StringField()
    album = ForeignKey("Album", db_column="album_id")


def test_create_table_sql():
    sql = SchemaBuilder(dialect).create_table_sql(User)
    expected = (
        'CREATE TABLE IF NOT EXISTS "user" ("id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, '
        '"name" TEXT NOT NULL, "age" INTEGER DEFAULT 0)'
    )
    assert sql == expected


def test_foreign_key_renders_references_clause():
    builder = SchemaBuilder(dialect, ModelRegistry(Album, Track))
    sql = builder.create_table_sql(Track)
    assert '"album_id" INTEGER NOT NULL REFERENCES "album" ("id")' in sql


def test_unresolvable_foreign_key_raises():
    with pytest.raises(RelationshipError):
        SchemaBuilder(dialect).create_table_sql(Track)


def test_drop_table_sql():
    sql = SchemaBuilder(dialect).drop_table_sql(User)
    assert sql == 'DROP TABLE IF EXISTS "user"'


def test_drop_table_logs_warning(caplog):
    caplog.set_level(logging.WARNING, logger="inkwell.schema.builder")
    SchemaBuilder(SQLiteDialect()).drop_table_sql(User)
    assert any("DROP TABLE generated" in record.message for record in caplog.records)


def test_models_ordered_parents_first():
    builder = SchemaBuilder(dialect, ModelRegistry(Track, Album, User))
    assert builder.ordered_models() == [Album, Track, User]


def test_create_all_builds_tables(tmp_path):
    adapter = SQLiteAdapter()
    adapter.connect(ConnectionConfig(url=f"sqlite:///{tmp_path / 'schema.db'}"))
    builder = SchemaBuilder(adapter.dialect, ModelRegistry(Track, Album))

    statements = builder.create_all(adapter)

    assert len(statements) == 2
    rows = adapter.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name").fetchall()
    assert {"album", "track"} <= {row["name"] for row in rows}
    adapter.close()
