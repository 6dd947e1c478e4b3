"""
Database Configuration Management

This module provides per-module database configuration, loaded from
environment variables with a ``<MODULE>_DATABASE_`` prefix and validated
with pydantic.
"""

from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


DEFAULT_DATABASE_PREFIX = "modular_monolith"
ASYNC_POSTGRES_DRIVER = "postgresql+asyncpg"


class DatabaseConfig(BaseSettings):
    """
    Connection settings for one module's database.

    If ``url`` is set it takes precedence over the discrete fields.
    Instances are immutable once constructed.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Core Database Connection
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    name: str = Field("", description="Database name")
    user: str = Field("postgres", description="Database username")
    password: str = Field("postgres", description="Database password")
    ssl_mode: str = Field("disable", description="PostgreSQL sslmode")
    url: Optional[str] = Field(None, description="Full connection URL, overrides the fields above")

    # Connection Pool Settings
    pool_size: int = Field(5, description="Database connection pool size")
    max_overflow: int = Field(20, description="Maximum connection overflow")
    pool_recycle: int = Field(300, description="Seconds before a pooled connection is recycled")
    connect_timeout: int = Field(10, description="Connection timeout in seconds")
    echo: bool = Field(False, description="Enable SQL query logging")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate database port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Database port must be between 1 and 65535")
        return v

    @field_validator("pool_size")
    @classmethod
    def validate_pool_size(cls, v):
        """Validate pool size is reasonable."""
        if v < 1:
            raise ValueError("Pool size must be at least 1")
        if v > 100:
            raise ValueError("Pool size should not exceed 100 for most applications")
        return v

    @property
    def database_url(self) -> URL:
        """
        Build the SQLAlchemy URL for this database.

        A configured ``url`` is used as-is, except that a bare ``postgres://``
        or ``postgresql://`` scheme is switched to the asyncpg driver and a
        libpq ``sslmode`` parameter becomes asyncpg's ``ssl``.
        """
        if self.url:
            url = make_url(self.url)
            if url.drivername in ("postgres", "postgresql"):
                url = url.set(drivername=ASYNC_POSTGRES_DRIVER)
            if url.get_driver_name() == "asyncpg" and "sslmode" in url.query:
                mode = url.query["sslmode"]
                url = url.difference_update_query(["sslmode"])
                if "ssl" not in url.query:
                    url = url.update_query_dict({"ssl": mode})
            return url

        return URL.create(
            ASYNC_POSTGRES_DRIVER,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.name,
        )

    @property
    def uses_url(self) -> bool:
        return bool(self.url)

    def get_engine_options(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``create_async_engine``.

        SQLite URLs get no pool sizing or asyncpg connect arguments.
        """
        options: Dict[str, Any] = {"echo": self.echo}
        url = self.database_url
        if url.get_backend_name() == "sqlite":
            return options

        options.update(
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_recycle=self.pool_recycle,
            pool_pre_ping=True,
        )
        if url.get_driver_name() == "asyncpg":
            connect_args: Dict[str, Any] = {"timeout": self.connect_timeout}
            if not self.uses_url:
                connect_args["ssl"] = self.ssl_mode
            options["connect_args"] = connect_args
        return options

    def describe(self) -> str:
        """Connection target without credentials, for log lines."""
        return self.database_url.render_as_string(hide_password=True)

    @classmethod
    def from_env(cls, module_name: str, database_prefix: str = DEFAULT_DATABASE_PREFIX) -> "DatabaseConfig":
        """
        Load configuration for ``module_name`` from ``<MODULE>_DATABASE_*`` variables.

        Args:
            module_name: Logical module name, e.g. ``customer``
            database_prefix: Prefix for the default database name

        Returns:
            DatabaseConfig: Configured instance
        """
        env_prefix = f"{module_name.upper()}_DATABASE_"
        config = cls(_env_prefix=env_prefix)
        if not config.name and not config.url:
            config = config.model_copy(update={"name": f"{database_prefix}_{module_name}"})
        return config
