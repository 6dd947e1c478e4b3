"""
Module Definition System

Defines the lifecycle contract every business module implements and the
dependencies injected into modules at initialization.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

from fastapi import APIRouter

if TYPE_CHECKING:
    from db.database_manager import DatabaseManager
    from shared.events import EventBus


class ModuleStatus(Enum):
    """Status of a module."""
    INSTANTIATED = "instantiated"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class ModuleDependencies:
    """Shared dependencies handed to every module during initialization."""
    event_bus: "EventBus"
    config: Any = None
    database_manager: Optional["DatabaseManager"] = None


class Module(ABC):
    """
    Abstract base class for business modules.

    All modules must inherit from this class and implement the required
    methods. ``start`` and ``stop`` are optional lifecycle hooks.
    """

    def __init__(self):
        self.status = ModuleStatus.INSTANTIATED
        self._error_message: Optional[str] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique name of this module."""
        pass

    @abstractmethod
    async def initialize(self, deps: ModuleDependencies) -> None:
        """Wire the module to its dependencies (database, event bus, config)."""
        pass

    @abstractmethod
    def register_routes(self, router: APIRouter) -> None:
        """Add this module's HTTP routes to ``router``."""
        pass

    @abstractmethod
    async def health(self) -> None:
        """Raise if the module is unhealthy."""
        pass

    async def start(self) -> None:
        """Called when the module is being started."""
        pass

    async def stop(self) -> None:
        """Called when the module is being stopped."""
        pass

    # Status management
    def get_status(self) -> ModuleStatus:
        """Get the current status of the module."""
        return self.status

    def get_error_message(self) -> Optional[str]:
        """Get the last error message if the module is in error state."""
        return self._error_message if self.status == ModuleStatus.ERROR else None

    def _set_status(self, status: ModuleStatus, error: Optional[Exception] = None) -> None:
        """Internal method to set module status."""
        self.status = status
        self._error_message = str(error) if status == ModuleStatus.ERROR and error else None
