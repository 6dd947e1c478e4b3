"""
Migration CLI Tests
"""

import pytest

from migrate_cli import MigrationCLI, build_parser, main
from project_tests.conftest import write_migration
from shared.config import ModulesConfig


def write_config(tmp_path, migrations_dir):
    path = tmp_path / "modules.yaml"
    path.write_text(
        "modules:\n"
        "  customer:\n"
        "    migration:\n"
        f"      path: '{migrations_dir}'\n"
        "  order: false\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sqlite_migrations(tmp_path):
    directory = tmp_path / "customer_migrations"
    directory.mkdir()
    write_migration(directory, 1, "create_notes", up="CREATE TABLE notes (id INTEGER PRIMARY KEY);", down="DROP TABLE notes;")
    write_migration(directory, 2, "create_tags", up="CREATE TABLE tags (id INTEGER PRIMARY KEY);", down="DROP TABLE tags;")
    return directory


def test_parser():
    parser = build_parser()

    args = parser.parse_args(["customer", "version"])
    assert (args.module, args.action, args.target) == ("customer", "version", None)

    args = parser.parse_args(["all", "version", "2"])
    assert args.target == 2

    args = parser.parse_args(["--config", "other.yaml", "order", "force", "3"])
    assert (args.config, args.action, args.target) == ("other.yaml", "force", 3)

    args = parser.parse_args(["customer", "create", "add phone"])
    assert args.title == "add phone"

    with pytest.raises(SystemExit):
        parser.parse_args(["customer"])


@pytest.mark.asyncio
async def test_create(tmp_path, capsys):
    migrations_dir = tmp_path / "migrations"
    config = write_config(tmp_path, migrations_dir)

    assert await main(["--config", str(config), "customer", "create", "Add phone number"]) == 0

    assert (migrations_dir / "000001_add_phone_number.up.sql").exists()
    assert (migrations_dir / "000001_add_phone_number.down.sql").exists()
    assert "Created" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_create_for_all_is_rejected(tmp_path, capsys):
    config = write_config(tmp_path, tmp_path / "migrations")

    assert await main(["--config", str(config), "all", "create", "x"]) == 1
    assert "specify a module" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_unknown_module(tmp_path, capsys):
    config = write_config(tmp_path, tmp_path / "migrations")

    assert await main(["--config", str(config), "billing", "up"]) == 1
    assert "unknown module: billing" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_missing_config(tmp_path):
    assert await main(["--config", str(tmp_path / "absent.yaml"), "customer", "up"]) == 1


@pytest.mark.asyncio
async def test_all_with_nothing_to_migrate(capsys):
    cli = MigrationCLI(ModulesConfig.model_validate({"modules": {"customer": False}}))

    await cli.run("all", "up")
    await cli.close()

    assert "No modules with migrations enabled." in capsys.readouterr().out


@pytest.mark.asyncio
async def test_migrate_sqlite_database(tmp_path, sqlite_url, sqlite_migrations, monkeypatch, capsys):
    monkeypatch.setenv("CUSTOMER_DATABASE_URL", sqlite_url)
    monkeypatch.delenv("CUSTOMER_MIGRATION_ENABLED", raising=False)
    config = str(write_config(tmp_path, sqlite_migrations))

    assert await main(["--config", config, "all", "up"]) == 0
    assert await main(["--config", config, "customer", "version"]) == 0
    assert "Module customer: version=2, dirty=False" in capsys.readouterr().out

    assert await main(["--config", config, "customer", "down"]) == 0
    assert await main(["--config", config, "customer", "version"]) == 0
    assert "Module customer: version=1, dirty=False" in capsys.readouterr().out

    assert await main(["--config", config, "customer", "version", "0"]) == 0
    assert await main(["--config", config, "customer", "force", "2"]) == 0
    assert await main(["--config", config, "customer", "version"]) == 0
    assert "Module customer: version=2, dirty=False" in capsys.readouterr().out

    assert await main(["--config", config, "customer", "version", "9"]) == 1
    assert "unknown migration version 9" in capsys.readouterr().out

    assert await main(["--config", config, "customer", "reset"]) == 0
    assert await main(["--config", config, "customer", "version"]) == 0
    assert "Module customer: version=2, dirty=False" in capsys.readouterr().out
