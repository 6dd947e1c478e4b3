"""
Migration Drivers

Database-specific operations the migrator needs: reading and writing the
``schema_migrations`` bookkeeping row, executing multi-statement SQL
scripts, and dropping every table for a reset.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from .exceptions import MigrationError


logger = logging.getLogger(__name__)


MIGRATIONS_TABLE = "schema_migrations"


class MigrationDriver(ABC):
    """Base class for dialect-specific migration drivers."""

    _drop_suffix = ""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def ensure_version_table(self) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(text(
                f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
                f"(version BIGINT NOT NULL PRIMARY KEY, dirty BOOLEAN NOT NULL)"
            ))

    async def get_state(self) -> Tuple[int, bool]:
        """Return ``(version, dirty)``; ``(0, False)`` when nothing is recorded."""
        await self.ensure_version_table()
        async with self.engine.connect() as conn:
            result = await conn.execute(text(f"SELECT version, dirty FROM {MIGRATIONS_TABLE} LIMIT 1"))
            row = result.first()

        if row is None:
            return 0, False
        return int(row[0]), bool(row[1])

    async def set_state(self, version: int, dirty: bool) -> None:
        """Replace the bookkeeping row. A clean version 0 leaves the table empty."""
        await self.ensure_version_table()
        async with self.engine.begin() as conn:
            await conn.execute(text(f"DELETE FROM {MIGRATIONS_TABLE}"))
            if version > 0 or dirty:
                await conn.execute(
                    text(f"INSERT INTO {MIGRATIONS_TABLE} (version, dirty) VALUES (:version, :dirty)"),
                    {"version": version, "dirty": dirty},
                )

    @abstractmethod
    async def run_script(self, script: str) -> None:
        """Execute a migration script that may hold several statements."""

    @abstractmethod
    async def list_tables(self) -> List[str]:
        pass

    async def drop_all(self) -> None:
        """Drop every table in the database, bookkeeping table included."""
        tables = await self.list_tables()
        preparer = self.engine.dialect.identifier_preparer
        async with self.engine.begin() as conn:
            for table in tables:
                await conn.execute(text(f"DROP TABLE IF EXISTS {preparer.quote(table)}{self._drop_suffix}"))
        logger.info(f"Dropped {len(tables)} table(s)")

    async def close(self) -> None:
        """Release driver resources. The engine itself belongs to the database manager."""


class PostgresMigrationDriver(MigrationDriver):
    """Runs scripts through asyncpg's simple query protocol."""

    _drop_suffix = " CASCADE"

    async def run_script(self, script: str) -> None:
        async with self.engine.connect() as conn:
            raw = await conn.get_raw_connection()
            await raw.driver_connection.execute(script)

    async def list_tables(self) -> List[str]:
        async with self.engine.connect() as conn:
            result = await conn.execute(text(
                "SELECT tablename FROM pg_tables WHERE schemaname = current_schema()"
            ))
            return [row[0] for row in result]

    async def drop_all(self) -> None:
        await super().drop_all()

        # Enum types outlive their tables
        preparer = self.engine.dialect.identifier_preparer
        async with self.engine.begin() as conn:
            result = await conn.execute(text(
                "SELECT t.typname FROM pg_type t "
                "JOIN pg_namespace n ON n.oid = t.typnamespace "
                "WHERE t.typtype = 'e' AND n.nspname = current_schema()"
            ))
            for (type_name,) in result.all():
                await conn.execute(text(f"DROP TYPE IF EXISTS {preparer.quote(type_name)} CASCADE"))


class SQLiteMigrationDriver(MigrationDriver):
    """Runs scripts with aiosqlite's ``executescript``."""

    async def run_script(self, script: str) -> None:
        async with self.engine.connect() as conn:
            raw = await conn.get_raw_connection()
            await raw.driver_connection.executescript(script)

    async def list_tables(self) -> List[str]:
        async with self.engine.connect() as conn:
            result = await conn.execute(text(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
            ))
            return [row[0] for row in result]


DRIVERS = {
    "postgresql": PostgresMigrationDriver,
    "sqlite": SQLiteMigrationDriver,
}


def create_migration_driver(engine: AsyncEngine) -> MigrationDriver:
    """Pick a driver from the engine's dialect."""
    dialect = engine.dialect.name
    driver_class = DRIVERS.get(dialect)
    if driver_class is None:
        raise MigrationError(f"unsupported database dialect for migrations: {dialect}")
    return driver_class(engine)
