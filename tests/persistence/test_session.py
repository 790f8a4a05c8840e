import logging

import pytest

from inkwell.adapters import ConnectionConfig, SQLiteAdapter
from inkwell.core import (
    DeleteRestrictedError,
    ForeignKey,
    HasMany,
    IntegerField,
    Model,
    ModelRegistry,
    OnDelete,
    RelationshipError,
    StringField,
)
from inkwell.persistence import Session, StaleInstanceError
from inkwell.schema import SchemaBuilder
from inkwell.validation import ValidationError


class User(Model):
    name = StringField(required=True)
    age = IntegerField(default=0)


class Folder(Model):
    name = StringField(required=True)
    files = HasMany("File", foreign_key="folder", on_delete=OnDelete.CASCADE)
    tags = HasMany("Tag", foreign_key="folder", on_delete=OnDelete.NULLIFY, order_by=["-label"])


class File(Model):
    name = StringField(required=True)
    folder = ForeignKey(Folder)


class Tag(Model):
    label = StringField()
    folder = ForeignKey(Folder, nullable=True)


def make_session(tmp_path, name="session.db"):
    registry = ModelRegistry(User, Folder, File, Tag)
    adapter = SQLiteAdapter()
    config = ConnectionConfig(url=f"sqlite:///{tmp_path / name}")
    session = Session(adapter, registry=registry, connection_config=config)
    SchemaBuilder(adapter.dialect, registry).create_all(adapter)
    return session


def test_session_add_and_commit_inserts_row(tmp_path):
    session = make_session(tmp_path)
    session.begin()
    user = User(name="Alice", age=30)
    session.add(user)
    session.commit()

    cursor = session.execute('SELECT name, age FROM "user"')
    row = cursor.fetchone()
    assert row["name"] == "Alice"
    assert row["age"] == 30
    assert user.id is not None
    session.close()


def test_save_returns_failure_and_writes_nothing(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="inkwell.persistence.session")
    session = make_session(tmp_path)

    result = session.save(User(name=""))

    assert not result.ok
    assert result.errors["name"] == ["can't be blank"]
    assert session.execute('SELECT COUNT(*) FROM "user"').fetchone()[0] == 0
    assert any("invalid fields: name" in record.message for record in caplog.records)
    session.close()


def test_flush_raises_for_invalid_instance(tmp_path):
    session = make_session(tmp_path)
    session.begin()
    session.add(User(name=None))
    with pytest.raises(ValidationError) as excinfo:
        session.flush()
    assert excinfo.value.errors == {"name": ["can't be blank"]}
    session.rollback()
    session.close()


def test_unregistered_model_is_rejected(tmp_path):
    class Stranger(Model):
        name = StringField()

    session = make_session(tmp_path)
    with pytest.raises(RelationshipError):
        session.save(Stranger(name="x"))
    session.close()


def test_session_identity_map_returns_same_instance(tmp_path):
    session = make_session(tmp_path)
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Bob", 25))

    first = session.get(User, id=1)
    second = session.get(User, id=1)
    assert first is second
    assert first.name == "Bob"
    assert first.is_persisted()
    session.close()


def test_session_delete_and_rollback(tmp_path):
    session = make_session(tmp_path)
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Chris", 40))

    user = session.get(User, id=1)
    session.begin()
    session.delete(user)
    session.rollback()
    remaining = session.execute('SELECT COUNT(*) FROM "user"').fetchone()[0]
    assert remaining == 1

    session.begin()
    session.delete(user)
    session.commit()
    remaining_after = session.execute('SELECT COUNT(*) FROM "user"').fetchone()[0]
    assert remaining_after == 0
    session.close()


def test_session_updates_dirty_instances(tmp_path):
    session = make_session(tmp_path)
    user = session.save(User(name="Dana", age=22)).unwrap()

    loaded = session.get(User, id=user.id)
    loaded.age = 23
    session.begin()
    session.commit()

    updated_age = session.execute('SELECT age FROM "user" WHERE id = ?', (user.id,)).fetchone()[0]
    assert updated_age == 23
    assert not loaded.is_dirty()
    session.close()


def test_nested_transactions_use_savepoints(tmp_path):
    session = make_session(tmp_path)

    with session.transaction():
        session.add(User(name="Outer", age=44))
        session.flush()
        with pytest.raises(RuntimeError):
            with session.transaction():
                session.add(User(name="Inner", age=1))
                session.flush()
                raise RuntimeError("boom")

    names = [row["name"] for row in session.execute('SELECT name FROM "user"').fetchall()]
    assert names == ["Outer"]
    session.close()


def test_cascade_deletes_children(tmp_path):
    session = make_session(tmp_path)
    folder = session.save(Folder(name="docs")).unwrap()
    folder.files.create(name="a.txt")
    folder.files.create(name="b.txt")

    session.destroy(folder)

    assert session.execute('SELECT COUNT(*) FROM "file"').fetchone()[0] == 0
    assert session.execute('SELECT COUNT(*) FROM "folder"').fetchone()[0] == 0
    assert not folder.is_persisted()
    session.close()


def test_nullify_detaches_children(tmp_path):
    session = make_session(tmp_path)
    folder = session.save(Folder(name="docs")).unwrap()
    tag = folder.tags.create(label="red").unwrap()

    session.destroy(folder)

    assert tag.folder is None
    stored = session.execute('SELECT folder FROM "tag" WHERE id = ?', (tag.id,)).fetchone()[0]
    assert stored is None
    session.close()


def test_restrict_blocks_delete(tmp_path):
    class Team(Model):
        name = StringField()
        members = HasMany("Member", foreign_key="team", on_delete=OnDelete.RESTRICT)

    class Member(Model):
        name = StringField()
        team = ForeignKey(Team)

    registry = ModelRegistry(Team, Member)
    adapter = SQLiteAdapter()
    session = Session(adapter, registry=registry, dsn="sqlite:///:memory:")
    SchemaBuilder(adapter.dialect, registry).create_all(adapter)

    team = session.save(Team(name="core")).unwrap()
    team.members.create(name="Ann")

    with pytest.raises(DeleteRestrictedError):
        session.destroy(team)
    assert session.execute('SELECT COUNT(*) FROM "team"').fetchone()[0] == 1
    assert team.is_persisted()
    session.close()


def test_related_uses_declared_ordering(tmp_path):
    session = make_session(tmp_path)
    folder = session.save(Folder(name="docs")).unwrap()
    for label in ["b", "c", "a"]:
        folder.tags.create(label=label)

    assert [t.label for t in session.related(folder, "tags")] == ["c", "b", "a"]
    assert [f.name for f in folder.files] == []
    assert session.count_related(folder, "tags") == 3
    session.close()


def test_close_detaches_instances(tmp_path):
    session = make_session(tmp_path)
    folder = session.save(Folder(name="docs")).unwrap()
    session.close()

    with pytest.raises(RelationshipError):
        folder.files.all()


def test_session_rejects_dual_connection_config(tmp_path):
    adapter = SQLiteAdapter()
    config = ConnectionConfig(url=f"sqlite:///{tmp_path / 'conflict.db'}")
    with pytest.raises(ValueError):
        Session(adapter, registry=ModelRegistry(), connection_config=config, dsn="sqlite:///:memory:")


def count_users(session):
    return session.execute('SELECT COUNT(*) FROM "user"').fetchone()[0]


def test_rolled_back_save_reverts_instance(tmp_path):
    session = make_session(tmp_path)
    user = User(name="Hello")

    with pytest.raises(RuntimeError):
        with session.transaction():
            assert session.save(user).ok
            assert user.is_persisted()
            raise RuntimeError("boom")

    assert count_users(session) == 0
    assert not user.is_persisted()
    assert user.pk is None
    assert session.get(User, id=1) is None

    user.name = "Hello again"
    assert session.save(user).ok
    names = [row["name"] for row in session.execute('SELECT name FROM "user"').fetchall()]
    assert names == ["Hello again"]
    assert session.get(User, id=user.id) is user
    session.close()


def test_released_savepoint_is_reverted_by_outer_rollback(tmp_path):
    session = make_session(tmp_path)
    outer = User(name="Outer")
    inner = User(name="Inner")

    with pytest.raises(RuntimeError):
        with session.transaction():
            session.save(outer)
            with session.transaction():
                session.save(inner)
            raise RuntimeError("boom")

    assert count_users(session) == 0
    assert not outer.is_persisted()
    assert not inner.is_persisted()
    assert inner.pk is None
    assert len(session.identity_map) == 0
    session.close()


def test_inner_rollback_keeps_outer_writes(tmp_path):
    session = make_session(tmp_path)
    outer = User(name="Outer")
    inner = User(name="Inner")

    with session.transaction():
        session.save(outer)
        with pytest.raises(RuntimeError):
            with session.transaction():
                session.save(inner)
                raise RuntimeError("boom")

    assert outer.is_persisted()
    assert session.get(User, id=outer.id) is outer
    assert not inner.is_persisted()
    assert inner.pk is None
    assert count_users(session) == 1
    session.close()


def test_failing_after_save_hook_reverts_save(tmp_path):
    session = make_session(tmp_path)
    saved = session.save(User(name="Dana", age=22)).unwrap()

    def fail(instance, **context):
        raise RuntimeError("hook failed")

    session.hooks.register("after_save", fail, model=User)

    fresh = User(name="Eve")
    with pytest.raises(RuntimeError):
        session.save(fresh)
    assert count_users(session) == 1
    assert not fresh.is_persisted()
    assert fresh.pk is None

    saved.name = "Dina"
    with pytest.raises(RuntimeError):
        session.save(saved)
    stored = session.execute('SELECT name FROM "user" WHERE id = ?', (saved.id,)).fetchone()[0]
    assert stored == "Dana"
    assert saved.is_persisted()
    assert saved.is_dirty()
    assert session.get(User, id=saved.id) is saved
    session.close()


def test_failed_commit_reverts_partial_flush(tmp_path):
    session = make_session(tmp_path)
    first = User(name="Valid")
    second = User(name="")
    session.add(first)
    session.add(second)

    with pytest.raises(ValidationError):
        session.commit()

    assert session.transaction_manager.depth == 0
    assert count_users(session) == 0
    assert not first.is_persisted()
    assert first.pk is None
    assert session.get(User, id=1) is None

    second.name = "Fixed"
    session.commit()
    assert count_users(session) == 2
    assert first.is_persisted() and second.is_persisted()
    session.close()


def test_closing_with_open_transaction_reverts_flushed_instances(tmp_path):
    session = make_session(tmp_path)
    session.begin()
    user = User(name="Mo")
    session.add(user)
    session.flush()
    assert user.is_persisted()

    session.close()
    assert not user.is_persisted()
    assert user.pk is None


def test_write_against_missing_row_raises_stale_error(tmp_path):
    session = make_session(tmp_path)
    user = session.save(User(name="Gone")).unwrap()
    session.execute('DELETE FROM "user" WHERE id = ?', (user.id,))

    user.name = "Back"
    with pytest.raises(StaleInstanceError):
        session.save(user)
    with pytest.raises(StaleInstanceError):
        session.destroy(user)
    assert count_users(session) == 0
    session.close()


def test_rejected_save_is_not_flushed_by_later_commit(tmp_path):
    session = make_session(tmp_path)
    user = session.save(User(name="Kim")).unwrap()

    user.name = ""
    assert not session.save(user).ok

    session.add(User(name="Lee"))
    session.commit()

    names = sorted(row["name"] for row in session.execute('SELECT name FROM "user"').fetchall())
    assert names == ["Kim", "Lee"]
    assert user.is_dirty()

    user.name = "Kim Lee"
    assert session.save(user).ok
    stored = session.execute('SELECT name FROM "user" WHERE id = ?', (user.id,)).fetchone()[0]
    assert stored == "Kim Lee"
    session.close()


def test_add_of_persisted_instance_queues_an_update(tmp_path):
    session = make_session(tmp_path)
    user = session.save(User(name="Ray", age=1)).unwrap()

    user.age = 2
    session.add(user)
    assert session.unit_of_work.dirty == [user]
    assert session.unit_of_work.new == []
    session.commit()

    assert session.execute('SELECT age FROM "user" WHERE id = ?', (user.id,)).fetchone()[0] == 2
    assert count_users(session) == 1
    session.close()
