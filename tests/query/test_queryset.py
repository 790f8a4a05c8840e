import pytest

from inkwell.adapters import SQLiteAdapter
from inkwell.core import ForeignKey, HasMany, IntegerField, Model, ModelRegistry, OnDelete, StringField
from inkwell.persistence import Session
from inkwell.query import Q, QuerySet
from inkwell.schema import SchemaBuilder


class User(Model):
    name = StringField(nullable=False)
    age = IntegerField()
    posts = HasMany("Post", foreign_key="author", on_delete=OnDelete.CASCADE)


class Post(Model):
    title = StringField()
    author = ForeignKey(User, db_column="author_id")


def make_session():
    registry = ModelRegistry(User, Post)
    adapter = SQLiteAdapter()
    session = Session(adapter, registry=registry, dsn="sqlite:///:memory:")
    SchemaBuilder(adapter.dialect, registry).create_all(adapter)
    return session


def test_queryset_to_sql_simple_filter():
    qs = QuerySet(User).filter(name="Alice")
    sql, params = qs.to_sql()
    assert sql == 'SELECT "id", "name", "age" FROM "user" WHERE "name" = ?'
    assert params == ["Alice"]


def test_queryset_ordering_and_limit():
    qs = QuerySet(User).filter(age__gte=18).order_by("-age").limit(5)
    sql, params = qs.to_sql()
    assert sql == 'SELECT "id", "name", "age" FROM "user" WHERE "age" >= ? ORDER BY "age" DESC LIMIT 5'
    assert params == [18]


def test_queryset_combined_q_objects():
    qs = QuerySet(User).where(Q(name="Alice") | Q(age__lt=18)).offset(10)
    sql, params = qs.to_sql()
    assert sql == 'SELECT "id", "name", "age" FROM "user" WHERE ("name" = ?) OR ("age" < ?) LIMIT -1 OFFSET 10'
    assert params == ["Alice", 18]


def test_queryset_exclude_negates_expression():
    qs = QuerySet(User).exclude(name="Bob")
    sql, params = qs.to_sql()
    assert sql == 'SELECT "id", "name", "age" FROM "user" WHERE NOT ("name" = ?)'
    assert params == ["Bob"]


def test_queryset_null_equality_generates_is_null():
    sql, params = QuerySet(User).filter(age=None).to_sql()
    assert sql == 'SELECT "id", "name", "age" FROM "user" WHERE "age" IS NULL'
    assert params == []


def test_like_lookups_escape_wildcards():
    sql, params = QuerySet(User).filter(name__contains="100%_off").to_sql()
    assert sql == r"""SELECT "id", "name", "age" FROM "user" WHERE "name" LIKE ? ESCAPE '\'"""
    assert params == [r"%100\%\_off%"]

    sql, params = QuerySet(User).filter(name__iexact=r"a\b").to_sql()
    assert sql.endswith(r"""WHERE "name" LIKE ? ESCAPE '\'""")
    assert params == [r"a\\b"]


def test_in_lookup_and_empty_in():
    sql, params = QuerySet(User).filter(id__in=[1, 2]).to_sql()
    assert sql.endswith('WHERE "id" IN (?, ?)')
    assert params == [1, 2]

    sql, params = QuerySet(User).filter(id__in=[]).to_sql()
    assert sql.endswith("WHERE 0 = 1")
    assert params == []


def test_foreign_key_filter_uses_column_and_pk():
    author = User(id=3, name="Ann")
    sql, params = QuerySet(Post).filter(author=author).to_sql()
    assert sql.endswith('WHERE "author_id" = ?')
    assert params == [3]


def test_unsupported_lookup_raises():
    qs = QuerySet(User).filter(name__startswith="A")
    with pytest.raises(ValueError):
        qs.to_sql()


def test_order_by_unknown_field_raises():
    with pytest.raises(KeyError):
        QuerySet(User).order_by("height")


def test_prefetch_related_validates_names():
    qs = QuerySet(User).prefetch_related("posts")
    assert qs._prefetch_related == ("posts",)
    with pytest.raises(ValueError):
        QuerySet(User).prefetch_related("articles")


def test_unbound_queryset_cannot_execute():
    with pytest.raises(RuntimeError):
        list(QuerySet(User))


def test_queryset_iteration_fetches_instances():
    session = make_session()
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Alice", 30))
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Bob", 25))

    users = list(session.query(User).order_by("id"))
    assert [u.name for u in users] == ["Alice", "Bob"]
    assert users[0].age == 30
    assert session.query(User).filter(age__gt=26).count() == 1
    assert session.query(User).filter(name__contains="li").first().name == "Alice"
    assert session.query(User).filter(name__iexact="bob").exists()
    session.close()


def test_like_lookups_match_wildcards_literally():
    session = make_session()
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Ann", 30))
    for title in ["abc", "a_c", "100 percent", "100% done"]:
        session.execute('INSERT INTO "post" (title, author_id) VALUES (?, ?)', (title, 1))

    def titles(**filters):
        return [p.title for p in session.query(Post).filter(**filters).order_by("id")]

    assert titles(title__iexact="a_c") == ["a_c"]
    assert titles(title__iexact="A_C") == ["a_c"]
    assert titles(title__contains="100%") == ["100% done"]
    assert titles(title__contains="_") == ["a_c"]
    session.close()


def test_queryset_iteration_reuses_identity_map():
    session = make_session()
    session.execute('INSERT INTO "user" (name, age) VALUES (?, ?)', ("Eve", 40))

    first = list(session.query(User).filter(id=1))[0]
    second = session.query(User).first()
    assert first is second
    session.close()


def test_prefetch_related_fills_collections():
    session = make_session()
    ann = session.save(User(name="Ann", age=30)).unwrap()
    bob = session.save(User(name="Bob", age=31)).unwrap()
    ann.posts.create(title="one")
    ann.posts.create(title="two")

    users = session.query(User).prefetch_related("posts").order_by("id").all()

    assert users == [ann, bob]
    assert [p.title for p in users[0]._related_cache["posts"]] == ["one", "two"]
    assert bob._related_cache["posts"] == []
    assert ann.posts.count() == 2
    session.close()
