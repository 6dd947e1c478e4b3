"""
Modular Monolith Application

Main application that wires per-module databases, migrations and the
module lifecycle together and serves the HTTP API with uvicorn.
"""

import asyncio
import logging
import os
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse

# Local imports
from db.config import DatabaseConfig
from db.database_manager import DatabaseManager
from db.migration_manager import MigrationManager
from module_manager.module_definition import ModuleDependencies
from module_manager.module_manager import ModuleManager
from modules import register_builtin_modules
from shared.config import AppSettings, ModulesConfig, load_modules_config
from shared.events import InMemoryEventBus
from shared.http import install_error_handlers

# Load environment variables
load_dotenv()

# Setup logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


API_PREFIX = "/api/v1"


class ModularApplication:
    """
    Main application with modular architecture.

    ``initialize`` runs the startup sequence; ``stop`` undoes it. Collaborators
    can be passed in, otherwise they are built from settings.
    """

    def __init__(self,
                 settings: Optional[AppSettings] = None,
                 modules_config: Optional[ModulesConfig] = None,
                 database_manager: Optional[DatabaseManager] = None,
                 module_manager: Optional[ModuleManager] = None):
        self.settings = settings or AppSettings()
        self.modules_config = modules_config
        self.database_manager = database_manager or DatabaseManager()
        self.event_bus = InMemoryEventBus()

        if module_manager is None:
            module_manager = ModuleManager()
            register_builtin_modules(module_manager)
        self.module_manager = module_manager
        self.registry = module_manager.get_registry()
        self.app: Optional[FastAPI] = None

    async def initialize(self) -> FastAPI:
        """
        Run the startup sequence and return the HTTP application.

        Any failure here is fatal: the error propagates to the caller.
        """
        logger.info(f"Initializing {self.settings.name} ({self.settings.environment})...")

        if self.modules_config is None:
            self.modules_config = load_modules_config(self.settings.modules_config)

        await self._setup_databases()

        if self.settings.auto_migrate:
            await self._run_migrations()

        self.module_manager.load_enabled_modules(self.modules_config)

        deps = ModuleDependencies(
            event_bus=self.event_bus,
            config=self.modules_config,
            database_manager=self.database_manager,
        )
        await self.registry.initialize_all(deps)

        self.app = self.create_app()

        await self.registry.start_all()
        logger.info(f"Application initialized with modules: {', '.join(self.registry.get_module_names())}")
        return self.app

    async def _setup_databases(self) -> None:
        """Register and verify one database per enabled module."""
        prefix = self.modules_config.database_prefix
        for name in self.modules_config.enabled_modules():
            if name not in self.database_manager.get_registered_databases():
                self.database_manager.register_database(name, DatabaseConfig.from_env(name, prefix))
            await self.database_manager.verify_connection(name)

    async def _run_migrations(self) -> None:
        logger.info("Applying pending migrations...")
        migration_manager = MigrationManager()
        try:
            for name in self.modules_config.migration_modules():
                engine = await self.database_manager.get_connection(name)
                migration_manager.register_module(name, engine, self.modules_config.migrations_path(name))
            await migration_manager.migrate_all_up()
        finally:
            await migration_manager.close()

    def create_app(self) -> FastAPI:
        """Build the FastAPI application with the health route and module routes."""
        app = FastAPI(title=self.settings.name, version=self.settings.version)
        install_error_handlers(app)

        @app.get("/health")
        async def health():
            body = await self.health()
            status_code = 200 if body["status"] == "healthy" else 503
            return JSONResponse(status_code=status_code, content=body)

        # Routes must be on the router before it is included
        api = APIRouter(prefix=API_PREFIX)
        self.registry.register_all_routes(api)
        app.include_router(api)
        return app

    async def health(self) -> dict:
        report = await self.registry.health_report()
        return {
            "status": report["status"],
            "service": self.settings.name,
            "version": self.settings.version,
            "environment": self.settings.environment,
            "databases": self.database_manager.get_registered_databases(),
            "modules": self.registry.get_module_names(),
            "module_health": report["modules"],
        }

    async def stop(self) -> None:
        """Stop modules in reverse order, then close every database."""
        logger.info("Stopping application...")
        errors = await self.registry.stop_all()
        if errors:
            logger.warning(f"Modules failed to stop cleanly: {', '.join(errors)}")

        await self.database_manager.close_all()
        logger.info("Application stopped")


async def main():
    """Main application entry point."""
    application = ModularApplication()

    try:
        app = await application.initialize()

        config = uvicorn.Config(
            app,
            host=application.settings.host,
            port=application.settings.port,
            log_level=application.settings.log_level.lower(),
        )
        server = uvicorn.Server(config)
        logger.info(f"Serving on http://{application.settings.host}:{application.settings.port}")
        await server.serve()

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        try:
            await application.stop()
        except Exception as e:
            logger.error(f"Error during final cleanup: {e}")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application shutdown complete")


if __name__ == '__main__':
    run()
