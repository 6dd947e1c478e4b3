"""
Database Infrastructure Errors

Errors raised by the connection manager and the migration system.
"""

from typing import Dict


class DatabaseError(Exception):
    """Base class for database infrastructure errors."""


class DatabaseConfigNotFoundError(DatabaseError):
    """Raised when a connection is requested for a name that was never registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"database configuration not found for: {name}")


class DatabaseConnectionError(DatabaseError):
    """Raised when a database engine cannot be created or verified."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"failed to connect to database {name}: {reason}")


class MigrationError(DatabaseError):
    """Raised when a migration cannot be registered or applied."""


class DirtyMigrationError(MigrationError):
    """Raised when a previous migration was interrupted and needs manual intervention."""

    def __init__(self, module_name: str, version: int):
        self.module_name = module_name
        self.version = version
        super().__init__(
            f"database for module {module_name} is dirty at version {version}; "
            f"fix the schema manually and force a version before migrating again"
        )


class MigrationBatchError(MigrationError):
    """Raised by batch operations when one or more modules failed."""

    def __init__(self, action: str, failures: Dict[str, Exception]):
        self.action = action
        self.failures = failures
        details = "; ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(f"migrate {action} failed for {len(failures)} module(s): {details}")
