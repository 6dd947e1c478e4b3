"""
Configuration Tests

Module configuration files and application settings.
"""

import pydantic
import pytest

from db.migration_manager import load_migrations
from shared.config import PROJECT_ROOT, AppSettings, ModulesConfig, load_modules_config


def write_config(tmp_path, content):
    path = tmp_path / "modules.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_shipped_configuration():
    config = load_modules_config("config/modules.yaml")

    assert config.enabled_modules() == ["customer", "order"]
    assert not config.is_enabled("user")
    assert config.database_prefix == "modular_monolith"

    for name in config.enabled_modules():
        assert load_migrations(config.migrations_path(name))


def test_shipped_migrations_are_valid():
    for name, versions in (("customer", [1]), ("order", [1, 2]), ("user", [1])):
        migrations = load_migrations(PROJECT_ROOT / "modules" / name / "migrations")
        assert [m.version for m in migrations] == versions


def test_shorthand_and_full_entries(tmp_path):
    path = write_config(tmp_path, """
modules:
  order:
    enabled: true
    migration:
      enabled: false
  customer: true
  user: false
  audit:
global:
  database:
    database_prefix: shop
""")

    config = load_modules_config(path)

    assert config.enabled_modules() == ["order", "customer", "audit"]
    assert config.migration_modules() == ["customer", "audit"]
    assert config.database_prefix == "shop"


def test_defaults_when_sections_missing(tmp_path):
    config = load_modules_config(write_config(tmp_path, "modules:\n"))

    assert config.enabled_modules() == []
    assert config.database_prefix == "modular_monolith"


def test_migration_switch_environment_override(tmp_path, monkeypatch):
    config = ModulesConfig.model_validate({"modules": {"customer": True, "order": True}})

    monkeypatch.setenv("ORDER_MIGRATION_ENABLED", "false")
    assert config.migration_modules() == ["customer"]

    monkeypatch.setenv("ORDER_MIGRATION_ENABLED", "true")
    assert config.migration_enabled("order")


def test_disabled_module_never_migrates(monkeypatch):
    config = ModulesConfig.model_validate({"modules": {"user": False}})
    monkeypatch.setenv("USER_MIGRATION_ENABLED", "true")

    assert not config.migration_enabled("user")


def test_migrations_path(tmp_path):
    config = ModulesConfig.model_validate({"modules": {
        "customer": True,
        "order": {"migration": {"path": "db/order_migrations"}},
        "user": {"migration": {"path": str(tmp_path)}},
    }})

    assert config.migrations_path("customer") == PROJECT_ROOT / "modules" / "customer" / "migrations"
    assert config.migrations_path("order") == PROJECT_ROOT / "db" / "order_migrations"
    assert config.migrations_path("user") == tmp_path


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_modules_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize("content", [
    "modules: [customer, order",
    "- customer\n- order\n",
    "modules:\n  - customer\n",
    "modules:\n  customer:\n    enabled: sometimes\n",
])
def test_invalid_files(tmp_path, content):
    with pytest.raises(ValueError):
        load_modules_config(write_config(tmp_path, content))


def test_app_settings_from_environment(monkeypatch):
    monkeypatch.setenv("APP_NAME", "crm")
    monkeypatch.setenv("APP_PORT", "9000")
    monkeypatch.setenv("APP_AUTO_MIGRATE", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = AppSettings()

    assert settings.name == "crm"
    assert settings.port == 9000
    assert settings.auto_migrate is True
    assert settings.log_level == "DEBUG"
    assert not settings.is_production


def test_app_settings_rejects_bad_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    with pytest.raises(pydantic.ValidationError):
        AppSettings()
