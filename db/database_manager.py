"""
Multi-Database Connection Manager

Keeps one pooled engine per logical database name. Engines are created
lazily on first request, verified, and cached for the lifetime of the
process.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .config import DatabaseConfig
from .exceptions import DatabaseConfigNotFoundError, DatabaseConnectionError


logger = logging.getLogger(__name__)


EngineFactory = Callable[..., AsyncEngine]


class DatabaseManager:
    """
    Database manager for all module databases.

    Holds a name-to-configuration map and a name-to-engine cache. Cache
    hits never await, so they cannot interleave with a miss; misses are
    serialized by a lock and re-check the cache before creating an engine.
    """

    def __init__(self, engine_factory: Optional[EngineFactory] = None):
        self._configs: Dict[str, DatabaseConfig] = {}
        self._engines: Dict[str, AsyncEngine] = {}
        self._lock = asyncio.Lock()
        self._engine_factory = engine_factory or create_async_engine

    def register_database(self, name: str, config: DatabaseConfig) -> None:
        """Register (or silently replace) the configuration for ``name``."""
        self._configs[name] = config
        logger.info(f"{name} database registered ({config.describe()})")

    async def get_connection(self, name: str) -> AsyncEngine:
        """
        Get the engine for ``name``, creating it on first use.

        Raises:
            DatabaseConfigNotFoundError: If ``name`` was never registered
            DatabaseConnectionError: If the engine cannot be created or verified
        """
        engine = self._engines.get(name)
        if engine is not None:
            return engine

        async with self._lock:
            # Check again in case another task created it while we waited
            engine = self._engines.get(name)
            if engine is not None:
                return engine

            config = self._configs.get(name)
            if config is None:
                raise DatabaseConfigNotFoundError(name)

            engine = await self._create_engine(name, config)
            self._engines[name] = engine
            logger.info(f"Database connection established for: {name}")
            return engine

    async def _create_engine(self, name: str, config: DatabaseConfig) -> AsyncEngine:
        try:
            engine = self._engine_factory(config.database_url, **config.get_engine_options())
        except Exception as e:
            raise DatabaseConnectionError(name, str(e)) from e

        try:
            await self._ping(engine)
        except Exception as e:
            await engine.dispose()
            raise DatabaseConnectionError(name, str(e)) from e

        return engine

    @staticmethod
    async def _ping(engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def verify_connection(self, name: str) -> None:
        """Verify the database for ``name`` answers a trivial query."""
        engine = await self.get_connection(name)
        try:
            await self._ping(engine)
        except Exception as e:
            raise DatabaseConnectionError(name, f"ping failed: {e}") from e
        logger.info(f"Database connection verified for: {name}")

    async def health_check(self, name: str) -> bool:
        """Check health of a cached connection without creating one."""
        engine = self._engines.get(name)
        if engine is None:
            return False

        try:
            await self._ping(engine)
            return True
        except Exception as e:
            logger.error(f"Database health check failed for {name}: {e}")
            return False

    async def close_all(self) -> None:
        """Dispose every cached engine; failures are logged and skipped."""
        async with self._lock:
            for name, engine in self._engines.items():
                try:
                    await engine.dispose()
                    logger.info(f"Database connection closed for: {name}")
                except Exception as e:
                    logger.error(f"Error closing database {name}: {e}")

            self._engines.clear()

    def get_registered_databases(self) -> List[str]:
        """Names of all registered database configurations."""
        return list(self._configs.keys())

    def get_config(self, name: str) -> DatabaseConfig:
        config = self._configs.get(name)
        if config is None:
            raise DatabaseConfigNotFoundError(name)
        return config

    def is_connected(self, name: str) -> bool:
        """Check if an engine is cached for ``name``."""
        return name in self._engines
