"""
Module Migration Manager

Each module owns a directory of versioned SQL scripts and its own
database. The manager keeps one migrator per module and drives schema
changes forward and backward, recording the applied version and a dirty
flag in the module database's ``schema_migrations`` table.

Migration files are named ``<version>_<title>.<up|down>.sql``:

    000001_create_customers_table.up.sql
    000001_create_customers_table.down.sql
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncEngine

from .exceptions import DirtyMigrationError, MigrationBatchError, MigrationError
from .migration_drivers import MigrationDriver, create_migration_driver


logger = logging.getLogger(__name__)


MIGRATION_FILE_PATTERN = re.compile(r"^([0-9]+)_(.*)\.(up|down)\.sql$")
VERSION_DIGITS = 6


@dataclass(frozen=True)
class Migration:
    """One versioned migration with its up and down scripts."""
    version: int
    title: str
    up_path: Path
    down_path: Path

    def read_up(self) -> str:
        return self.up_path.read_text(encoding="utf-8")

    def read_down(self) -> str:
        return self.down_path.read_text(encoding="utf-8")


def load_migrations(directory: Union[str, Path]) -> List[Migration]:
    """
    Load and validate the migration files in ``directory``.

    Files that are not ``.sql`` are ignored. Raises MigrationError for a
    missing directory, a malformed or duplicate ``.sql`` file, a version
    that is not positive, or an up script without its down script (and
    the reverse).
    """
    path = Path(directory)
    if not path.is_dir():
        raise MigrationError(f"migrations directory does not exist: {path}")

    scripts: Dict[int, Dict[str, Path]] = {}
    titles: Dict[int, str] = {}

    for file_path in sorted(path.iterdir()):
        if not file_path.is_file() or file_path.suffix != ".sql":
            continue

        match = MIGRATION_FILE_PATTERN.match(file_path.name)
        if not match:
            raise MigrationError(f"malformed migration file name: {file_path.name}")

        version = int(match.group(1))
        title, direction = match.group(2), match.group(3)
        if version <= 0:
            raise MigrationError(f"migration version must be positive: {file_path.name}")

        entry = scripts.setdefault(version, {})
        if direction in entry:
            raise MigrationError(f"duplicate {direction} migration for version {version}: {file_path.name}")
        entry[direction] = file_path
        titles.setdefault(version, title)

    migrations = []
    for version in sorted(scripts):
        entry = scripts[version]
        if "down" not in entry:
            raise MigrationError(f"migration {version} has an up script but no down script")
        if "up" not in entry:
            raise MigrationError(f"migration {version} has a down script but no up script")
        migrations.append(Migration(version, titles[version], entry["up"], entry["down"]))

    return migrations


def create_migration_files(directory: Union[str, Path], title: str) -> Tuple[Path, Path]:
    """
    Create the next sequential up/down pair in ``directory``.

    Returns:
        Tuple of the up and down file paths
    """
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)

    slug = re.sub(r"[^a-z0-9]+", "_", title.strip().lower()).strip("_")
    if not slug:
        raise MigrationError(f"invalid migration title: {title!r}")

    versions = [m.version for m in load_migrations(path)]
    next_version = (max(versions) if versions else 0) + 1
    prefix = f"{next_version:0{VERSION_DIGITS}d}_{slug}"

    up_path = path / f"{prefix}.up.sql"
    down_path = path / f"{prefix}.down.sql"
    up_path.write_text(f"-- {title}\n", encoding="utf-8")
    down_path.write_text(f"-- Revert: {title}\n", encoding="utf-8")

    logger.info(f"Created migration files {up_path.name} and {down_path.name}")
    return up_path, down_path


class Migrator:
    """Applies one module's migrations against that module's database."""

    def __init__(self, module_name: str, migrations: List[Migration], driver: MigrationDriver):
        self.module_name = module_name
        self.migrations = migrations
        self.driver = driver
        self._versions = [m.version for m in migrations]

    async def version(self) -> Tuple[int, bool]:
        return await self.driver.get_state()

    async def _clean_version(self) -> int:
        version, dirty = await self.driver.get_state()
        if dirty:
            raise DirtyMigrationError(self.module_name, version)
        return version

    def _previous_version(self, version: int) -> int:
        earlier = [v for v in self._versions if v < version]
        return earlier[-1] if earlier else 0

    def _get_migration(self, version: int) -> Migration:
        for migration in self.migrations:
            if migration.version == version:
                return migration
        raise MigrationError(f"no migration file for version {version} in module {self.module_name}")

    async def _run_step(self, target: int, script: str, label: str) -> None:
        await self.driver.set_state(target, True)
        try:
            await self.driver.run_script(script)
        except Exception as e:
            raise MigrationError(f"{label} failed for module {self.module_name}: {e}") from e
        await self.driver.set_state(target, False)

    async def _step_up(self, migration: Migration) -> None:
        logger.info(f"[{self.module_name}] applying {migration.version}/u {migration.title}")
        await self._run_step(migration.version, migration.read_up(), f"migration {migration.version} up")

    async def _step_down(self, migration: Migration) -> None:
        target = self._previous_version(migration.version)
        logger.info(f"[{self.module_name}] reverting {migration.version}/d {migration.title}")
        await self._run_step(target, migration.read_down(), f"migration {migration.version} down")

    async def up(self) -> bool:
        """Apply every pending migration. Returns False when there was nothing to do."""
        current = await self._clean_version()
        pending = [m for m in self.migrations if m.version > current]
        for migration in pending:
            await self._step_up(migration)
        return bool(pending)

    async def down(self) -> bool:
        """Revert the latest applied migration. Returns False at version 0."""
        current = await self._clean_version()
        if current == 0:
            return False
        await self._step_down(self._get_migration(current))
        return True

    async def to_version(self, target: int) -> bool:
        """Move forward or backward to ``target``; 0 rolls everything back."""
        if target != 0 and target not in self._versions:
            raise MigrationError(f"unknown migration version {target} for module {self.module_name}")

        current = await self._clean_version()
        if target == current:
            return False
        if current != 0:
            self._get_migration(current)

        if target > current:
            for migration in self.migrations:
                if current < migration.version <= target:
                    await self._step_up(migration)
        else:
            for migration in reversed(self.migrations):
                if target < migration.version <= current:
                    await self._step_down(migration)
        return True

    async def force(self, version: int) -> None:
        """Record ``version`` as applied and clean without running any script."""
        if version < 0:
            raise MigrationError(f"cannot force negative version {version}")
        await self.driver.set_state(version, False)

    async def reset(self) -> None:
        """Drop all tables, then apply every migration from scratch."""
        await self.driver.drop_all()
        await self.up()

    async def close(self) -> None:
        await self.driver.close()


DriverFactory = Callable[[AsyncEngine], MigrationDriver]


class MigrationManager:
    """
    Owns one migrator per registered module.

    Batch operations visit modules in registration order and keep going
    after a failure; the collected failures are raised together at the end.
    """

    def __init__(self, driver_factory: Optional[DriverFactory] = None):
        self._migrators: Dict[str, Migrator] = {}
        self._driver_factory = driver_factory or create_migration_driver

    def register_module(self, name: str, engine: AsyncEngine, migrations_dir: Union[str, Path]) -> None:
        """
        Register a module's migrations against its database engine.

        Raises:
            MigrationError: If the directory or its files are invalid or the
                engine's dialect is unsupported
        """
        path = Path(migrations_dir).resolve()
        migrations = load_migrations(path)
        driver = self._driver_factory(engine)
        self._migrators[name] = Migrator(name, migrations, driver)
        logger.info(f"Registered {len(migrations)} migration(s) for module {name} from {path}")

    def get_registered_modules(self) -> List[str]:
        return list(self._migrators.keys())

    def get_migrator(self, name: str) -> Migrator:
        migrator = self._migrators.get(name)
        if migrator is None:
            raise MigrationError(f"no migrator registered for module: {name}")
        return migrator

    async def migrate_up(self, name: str) -> bool:
        changed = await self.get_migrator(name).up()
        if changed:
            logger.info(f"Migrations applied for module {name}")
        else:
            logger.info(f"No new migrations for module {name}")
        return changed

    async def migrate_down(self, name: str) -> bool:
        changed = await self.get_migrator(name).down()
        if changed:
            logger.info(f"Rolled back one migration for module {name}")
        else:
            logger.info(f"No migrations to roll back for module {name}")
        return changed

    async def migrate_to_version(self, name: str, version: int) -> bool:
        changed = await self.get_migrator(name).to_version(version)
        if changed:
            logger.info(f"Module {name} migrated to version {version}")
        else:
            logger.info(f"Module {name} already at version {version}")
        return changed

    async def get_version(self, name: str) -> Tuple[int, bool]:
        return await self.get_migrator(name).version()

    async def force(self, name: str, version: int) -> None:
        await self.get_migrator(name).force(version)
        logger.warning(f"Forced module {name} to version {version}")

    async def reset(self, name: str) -> None:
        await self.get_migrator(name).reset()
        logger.info(f"Database reset for module {name}")

    async def migrate_all_up(self) -> None:
        await self._run_all("up", self.migrate_up)

    async def migrate_all_down(self) -> None:
        await self._run_all("down", self.migrate_down)

    async def _run_all(self, action: str, operation) -> None:
        failures: Dict[str, Exception] = {}
        for name in self._migrators:
            try:
                await operation(name)
            except Exception as e:
                logger.error(f"Migration {action} failed for module {name}: {e}")
                failures[name] = e

        if failures:
            raise MigrationBatchError(action, failures)

    async def close(self) -> None:
        """Release every migrator; close errors are logged, not raised."""
        for name, migrator in self._migrators.items():
            try:
                await migrator.close()
            except Exception as e:
                logger.error(f"Error closing migrator for module {name}: {e}")
        self._migrators.clear()
