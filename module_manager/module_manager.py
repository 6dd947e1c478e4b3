"""
Module Manager

Maps module names to constructors and instantiates the modules enabled in
configuration into a registry.
"""

import logging
from typing import Callable, Dict, List, Optional

from .exceptions import UnknownModuleError
from .module_definition import Module
from .module_registry import ModuleRegistry

logger = logging.getLogger(__name__)


ModuleConstructor = Callable[[], Module]


class ModuleManager:
    """
    Constructor table plus the registry of instantiated modules.

    Constructors are registered explicitly by the application bootstrap;
    nothing is registered as a side effect of importing a module package.
    """

    def __init__(self, registry: Optional[ModuleRegistry] = None):
        self._constructors: Dict[str, ModuleConstructor] = {}
        self.registry = registry or ModuleRegistry()

    def register_module(self, name: str, constructor: ModuleConstructor) -> None:
        """Register (or replace) the constructor for ``name``."""
        if name in self._constructors:
            logger.warning(f"Replacing constructor for module: {name}")
        self._constructors[name] = constructor
        logger.debug(f"Module constructor registered: {name}")

    def has_module(self, name: str) -> bool:
        return name in self._constructors

    def get_available_modules(self) -> List[str]:
        """Names of all modules that can be instantiated."""
        return list(self._constructors.keys())

    def create_module(self, name: str) -> Module:
        """
        Instantiate the module registered under ``name``.

        Raises:
            UnknownModuleError: If no constructor is registered for ``name``
        """
        constructor = self._constructors.get(name)
        if constructor is None:
            raise UnknownModuleError(name)
        return constructor()

    def load_enabled_modules(self, modules_config) -> List[str]:
        """
        Instantiate each enabled module, in order, into the registry.

        Args:
            modules_config: A ModulesConfig, or module names in configuration order

        Returns:
            Names of the modules that were loaded

        Raises:
            UnknownModuleError: If an enabled name has no constructor
        """
        if hasattr(modules_config, "enabled_modules"):
            enabled = modules_config.enabled_modules()
        else:
            enabled = list(modules_config)

        loaded = []
        for name in enabled:
            module = self.create_module(name)
            self.registry.register(module)
            loaded.append(name)
            logger.info(f"Loaded module: {name}")

        logger.info(f"Loaded {len(loaded)} module(s): {', '.join(loaded) or 'none'}")
        return loaded

    def get_registry(self) -> ModuleRegistry:
        return self.registry
