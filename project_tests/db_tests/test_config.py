"""
Database Configuration Tests
"""

import pydantic
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from db.config import ASYNC_POSTGRES_DRIVER, DatabaseConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for module in ("CUSTOMER", "ORDER"):
        for key in ("HOST", "PORT", "NAME", "USER", "PASSWORD", "URL", "POOL_SIZE", "SSL_MODE"):
            monkeypatch.delenv(f"{module}_DATABASE_{key}", raising=False)


def test_defaults_use_prefixed_database_name():
    config = DatabaseConfig.from_env("customer", "shop")

    assert config.name == "shop_customer"
    assert config.host == "localhost"
    assert config.port == 5432
    assert config.database_url.drivername == ASYNC_POSTGRES_DRIVER
    assert config.database_url.database == "shop_customer"


def test_module_environment_variables(monkeypatch):
    monkeypatch.setenv("CUSTOMER_DATABASE_HOST", "db.internal")
    monkeypatch.setenv("CUSTOMER_DATABASE_PORT", "6543")
    monkeypatch.setenv("CUSTOMER_DATABASE_NAME", "customers")
    monkeypatch.setenv("ORDER_DATABASE_HOST", "orders.internal")

    customer = DatabaseConfig.from_env("customer")
    order = DatabaseConfig.from_env("order")

    assert customer.database_url.host == "db.internal"
    assert customer.database_url.port == 6543
    assert customer.name == "customers"
    assert order.host == "orders.internal"
    assert order.name == "modular_monolith_order"


def test_url_takes_precedence_and_gets_async_driver(monkeypatch):
    monkeypatch.setenv("CUSTOMER_DATABASE_URL", "postgres://app:secret@pg:5433/crm")
    monkeypatch.setenv("CUSTOMER_DATABASE_HOST", "ignored")

    config = DatabaseConfig.from_env("customer")

    url = config.database_url
    assert config.uses_url
    assert url.drivername == ASYNC_POSTGRES_DRIVER
    assert url.host == "pg"
    assert url.database == "crm"
    assert config.name == ""


def test_libpq_sslmode_becomes_asyncpg_ssl():
    config = DatabaseConfig(url="postgres://u:p@localhost:5433/modular_monolith_customer?sslmode=disable")

    url = config.database_url
    assert dict(url.query) == {"ssl": "disable"}

    engine = create_async_engine(url, **config.get_engine_options())
    _, connect_args = engine.dialect.create_connect_args(url)
    assert connect_args["ssl"] == "disable"
    assert "sslmode" not in connect_args
    assert connect_args["port"] == 5433


def test_explicit_ssl_wins_over_sslmode():
    config = DatabaseConfig(url="postgresql+asyncpg://u:p@pg/crm?sslmode=disable&ssl=require")

    assert dict(config.database_url.query) == {"ssl": "require"}


def test_describe_hides_password():
    config = DatabaseConfig(name="crm", password="hunter2")

    description = config.describe()
    assert "hunter2" not in description
    assert "crm" in description


def test_engine_options_for_postgres():
    config = DatabaseConfig(name="crm", pool_size=7, connect_timeout=3)

    options = config.get_engine_options()
    assert options["pool_size"] == 7
    assert options["pool_pre_ping"] is True
    assert options["connect_args"] == {"timeout": 3, "ssl": "disable"}


def test_engine_options_for_sqlite_skip_pooling():
    config = DatabaseConfig(url="sqlite+aiosqlite:///tmp/test.db")

    options = config.get_engine_options()
    assert options == {"echo": False}


@pytest.mark.parametrize("field, value", [("port", 0), ("port", 70000), ("pool_size", 0)])
def test_invalid_values_rejected(field, value):
    with pytest.raises(pydantic.ValidationError):
        DatabaseConfig(**{field: value})


def test_config_is_immutable():
    config = DatabaseConfig(name="crm")

    with pytest.raises(pydantic.ValidationError):
        config.host = "elsewhere"
