"""
Application Configuration

Process-wide settings come from ``APP_*`` environment variables (and an
optional ``.env`` file). Which modules run, and whether their migrations
run, comes from ``config/modules.yaml``:

    modules:
      customer: true
      order:
        migration:
          enabled: false
      user: false

    global:
      database:
        database_prefix: "modular_monolith"
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from db.config import DEFAULT_DATABASE_PREFIX

logger = logging.getLogger(__name__)


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_MODULES_CONFIG = "config/modules.yaml"


class AppSettings(BaseSettings):
    """Process-wide application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    name: str = Field("modular-monolith", description="Service name reported by /health")
    version: str = Field("1.0.0", description="Service version reported by /health")
    environment: str = Field("development", description="Deployment environment")
    host: str = Field("0.0.0.0", description="HTTP bind address")
    port: int = Field(8080, description="HTTP port")
    modules_config: str = Field(DEFAULT_MODULES_CONFIG, description="Path to the module configuration file")
    auto_migrate: bool = Field(False, description="Apply pending migrations at startup")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL", description="Root log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


class MigrationSettings(BaseModel):
    enabled: bool = True
    path: Optional[str] = None


class ModuleSettings(BaseModel):
    """Per-module entry from ``modules.yaml``."""
    enabled: bool = True
    migration: MigrationSettings = Field(default_factory=MigrationSettings)


class DatabaseGlobalSettings(BaseModel):
    database_prefix: str = DEFAULT_DATABASE_PREFIX


class GlobalSettings(BaseModel):
    database: DatabaseGlobalSettings = Field(default_factory=DatabaseGlobalSettings)


class ModulesConfig(BaseModel):
    """
    Parsed module configuration.

    ``modules`` preserves file order, which is the order modules are
    loaded, initialized and started in.
    """

    modules: Dict[str, ModuleSettings] = Field(default_factory=dict)
    global_: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("modules", mode="before")
    @classmethod
    def expand_shorthand(cls, v):
        """Accept ``name: true`` as shorthand for ``name: {enabled: true}``."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("'modules' must be a mapping of module name to settings")

        expanded = {}
        for name, value in v.items():
            if isinstance(value, bool):
                expanded[name] = {"enabled": value}
            elif value is None:
                expanded[name] = {}
            else:
                expanded[name] = value
        return expanded

    @property
    def database_prefix(self) -> str:
        return self.global_.database.database_prefix

    def enabled_modules(self) -> List[str]:
        """Enabled module names in configuration order."""
        return [name for name, settings in self.modules.items() if settings.enabled]

    def is_enabled(self, name: str) -> bool:
        settings = self.modules.get(name)
        return bool(settings and settings.enabled)

    def migration_enabled(self, name: str) -> bool:
        settings = self.modules.get(name)
        if settings is None or not settings.enabled:
            return False

        override = os.getenv(f"{name.upper()}_MIGRATION_ENABLED")
        if override is not None:
            return override.strip().lower() in ("1", "true", "yes", "on")
        return settings.migration.enabled

    def migration_modules(self) -> List[str]:
        """Enabled modules whose migrations are enabled, in configuration order."""
        return [name for name in self.enabled_modules() if self.migration_enabled(name)]

    def migrations_path(self, name: str) -> Path:
        """Migration directory for ``name``; relative paths resolve against the project root."""
        settings = self.modules.get(name)
        configured = settings.migration.path if settings else None
        if not configured:
            return PROJECT_ROOT / "modules" / name / "migrations"

        path = Path(configured)
        return path if path.is_absolute() else PROJECT_ROOT / path


def load_modules_config(path: Union[str, Path, None] = None) -> ModulesConfig:
    """
    Load ``modules.yaml``.

    Args:
        path: Config file path; relative paths resolve against the working
            directory first, then the project root

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML or has the wrong shape
    """
    config_path = Path(path or DEFAULT_MODULES_CONFIG)
    if not config_path.is_absolute() and not config_path.exists():
        config_path = PROJECT_ROOT / config_path

    if not config_path.exists():
        raise FileNotFoundError(f"Module configuration not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Module configuration must be a mapping: {config_path}")

    try:
        config = ModulesConfig.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid module configuration in {config_path}: {e}") from e

    logger.info(f"Loaded module configuration from {config_path}: enabled={config.enabled_modules()}")
    return config
