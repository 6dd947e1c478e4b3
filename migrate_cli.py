"""
Migration CLI

Command-line interface for per-module database migrations.

    python migrate_cli.py customer up
    python migrate_cli.py all down
    python migrate_cli.py order version          # show version
    python migrate_cli.py order version 1        # migrate to version 1
    python migrate_cli.py order force 2          # clear a dirty state
    python migrate_cli.py customer reset
    python migrate_cli.py customer create "add phone number"
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from db.config import DatabaseConfig
from db.database_manager import DatabaseManager
from db.migration_manager import MigrationManager, create_migration_files
from modules import BUILTIN_MODULES
from shared.config import DEFAULT_MODULES_CONFIG, ModulesConfig, load_modules_config

logger = logging.getLogger(__name__)


ALL_MODULES = "all"


class MigrationCLI:
    """Runs one migration action against one module or every enabled module."""

    def __init__(self,
                 modules_config: ModulesConfig,
                 database_manager: Optional[DatabaseManager] = None,
                 migration_manager: Optional[MigrationManager] = None):
        self.modules_config = modules_config
        self.database_manager = database_manager or DatabaseManager()
        self.migration_manager = migration_manager or MigrationManager()

    def resolve_modules(self, target: str) -> List[str]:
        """
        Module names an action applies to.

        ``all`` means every enabled module whose migrations are enabled.
        """
        if target == ALL_MODULES:
            return self.modules_config.migration_modules()
        if target not in BUILTIN_MODULES and target not in self.modules_config.modules:
            raise ValueError(f"unknown module: {target}")
        return [target]

    async def setup(self, modules: List[str]) -> None:
        """Connect to each module's database and register its migrations."""
        prefix = self.modules_config.database_prefix
        for name in modules:
            if name not in self.database_manager.get_registered_databases():
                self.database_manager.register_database(name, DatabaseConfig.from_env(name, prefix))
            engine = await self.database_manager.get_connection(name)
            self.migration_manager.register_module(name, engine, self.modules_config.migrations_path(name))

    def create(self, target: str, title: str) -> None:
        if target == ALL_MODULES:
            raise ValueError("cannot create a migration for 'all' modules, specify a module")
        self.resolve_modules(target)

        up_path, down_path = create_migration_files(self.modules_config.migrations_path(target), title)
        print(f"Created {up_path}")
        print(f"Created {down_path}")

    async def up(self, target: str) -> None:
        if target == ALL_MODULES:
            await self.migration_manager.migrate_all_up()
        else:
            await self.migration_manager.migrate_up(target)

    async def down(self, target: str) -> None:
        if target == ALL_MODULES:
            await self.migration_manager.migrate_all_down()
        else:
            await self.migration_manager.migrate_down(target)

    async def version(self, modules: List[str], target_version: Optional[int]) -> None:
        for name in modules:
            if target_version is None:
                version, dirty = await self.migration_manager.get_version(name)
                print(f"Module {name}: version={version}, dirty={dirty}")
            else:
                await self.migration_manager.migrate_to_version(name, target_version)

    async def force(self, modules: List[str], version: int) -> None:
        for name in modules:
            await self.migration_manager.force(name, version)

    async def reset(self, modules: List[str]) -> None:
        for name in modules:
            await self.migration_manager.reset(name)

    async def run(self, target: str, action: str, argument: Optional[str] = None) -> None:
        """Execute ``action`` for ``target``; raises on any failure."""
        if action == "create":
            if not argument:
                raise ValueError("a migration title is required for create")
            self.create(target, argument)
            return

        modules = self.resolve_modules(target)
        if not modules:
            print("No modules with migrations enabled.")
            return

        await self.setup(modules)

        if action == "up":
            await self.up(target)
        elif action == "down":
            await self.down(target)
        elif action == "version":
            await self.version(modules, int(argument) if argument is not None else None)
        elif action == "force":
            if argument is None:
                raise ValueError("a version is required for force")
            await self.force(modules, int(argument))
        elif action == "reset":
            await self.reset(modules)
        else:
            raise ValueError(f"unknown action: {action}")

    async def close(self) -> None:
        await self.migration_manager.close()
        await self.database_manager.close_all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Per-module database migrations")
    parser.add_argument('module', help="Module name, or 'all' for every enabled module")
    parser.add_argument('--config', default=None, help=f"Module configuration file (default: {DEFAULT_MODULES_CONFIG})")
    subparsers = parser.add_subparsers(dest='action', help='Migration action')
    subparsers.required = True

    subparsers.add_parser('up', help='Apply all pending migrations')
    subparsers.add_parser('down', help='Roll back the latest migration')

    version_parser = subparsers.add_parser('version', help='Show the current version, or migrate to a version')
    version_parser.add_argument('target', nargs='?', type=int, help='Version to migrate to (0 rolls back everything)')

    force_parser = subparsers.add_parser('force', help='Set the version and clear the dirty flag')
    force_parser.add_argument('target', type=int, help='Version to record')

    subparsers.add_parser('reset', help='Drop all tables and migrate up again')

    create_parser = subparsers.add_parser('create', help='Create a new up/down migration pair')
    create_parser.add_argument('title', help='Migration title')

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    if args.action == 'create':
        argument = args.title
    else:
        target = getattr(args, 'target', None)
        argument = str(target) if target is not None else None

    try:
        modules_config = load_modules_config(args.config or os.getenv('APP_MODULES_CONFIG') or DEFAULT_MODULES_CONFIG)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    cli = MigrationCLI(modules_config)
    try:
        await cli.run(args.module, args.action, argument)
    except Exception as e:
        logger.debug("Migration failed", exc_info=True)
        print(f"Error: {e}")
        return 1
    finally:
        await cli.close()

    print("Migration completed successfully!")
    return 0


def run():
    load_dotenv()
    log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
