"""
Database Infrastructure Package

Per-module database configuration, lazily created connection pools and
versioned SQL migrations, one database per business module.
"""

from .config import DatabaseConfig
from .database_manager import DatabaseManager
from .exceptions import (
    DatabaseConfigNotFoundError,
    DatabaseConnectionError,
    DatabaseError,
    DirtyMigrationError,
    MigrationBatchError,
    MigrationError,
)
from .migration_manager import MigrationManager, create_migration_files, load_migrations

__all__ = [
    "DatabaseConfig",
    "DatabaseManager",
    "MigrationManager",
    "create_migration_files",
    "load_migrations",
    "DatabaseError",
    "DatabaseConfigNotFoundError",
    "DatabaseConnectionError",
    "MigrationError",
    "DirtyMigrationError",
    "MigrationBatchError",
]

# Version info
__version__ = "1.0.0"
__description__ = "Async per-module database management with connection pooling and SQL migrations."
