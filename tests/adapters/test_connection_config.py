import pytest

from inkwell.adapters import AdapterConfigurationError, ConnectionConfig


def test_from_dsn_parses_core_fields_and_options():
    config = ConnectionConfig.from_dsn(
        "sqlite:///blog.db?autocommit=true&timeout=2.5&isolation_level=immediate&cache=shared"
    )
    assert config.autocommit is True
    assert config.timeout == 2.5
    assert config.isolation_level == "immediate"
    assert config.options == {"cache": "shared"}
    assert config.dsn.database == "blog.db"


def test_from_dsn_options_override():
    config = ConnectionConfig.from_dsn("sqlite:///blog.db?cache=shared", options={"cache": "private"})
    assert config.options == {"cache": "private"}


def test_in_memory_and_absolute_paths():
    assert ConnectionConfig.from_dsn("sqlite:///:memory:").dsn.database == ":memory:"
    assert ConnectionConfig.from_dsn("sqlite:////tmp/blog.db").dsn.database == "/tmp/blog.db"


def test_invalid_autocommit_value_raises():
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig.from_dsn("sqlite:///blog.db?autocommit=maybe")


def test_invalid_timeout_value_raises():
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig.from_dsn("sqlite:///blog.db?timeout=soon")


def test_dsn_without_scheme_raises():
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig.from_dsn("blog.db")


def test_from_env_requires_variable(monkeypatch):
    monkeypatch.delenv("INKWELL_TEST_DSN", raising=False)
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig.from_env("INKWELL_TEST_DSN")


def test_from_env_records_source(monkeypatch):
    monkeypatch.setenv("INKWELL_TEST_DSN", "sqlite:///:memory:")
    config = ConnectionConfig.from_env("INKWELL_TEST_DSN", autocommit=True)
    assert config.source == "INKWELL_TEST_DSN"
    assert config.autocommit is True
    assert config.descriptive_label() == "INKWELL_TEST_DSN (sqlite:///:memory:)"
