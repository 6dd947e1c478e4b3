"""
Module Registry

Holds instantiated modules in registration order and drives their
lifecycle: initialize, route registration, start, health and stop.
"""

import asyncio
import logging
from typing import Awaitable, Dict, List, Optional

from fastapi import APIRouter

from .exceptions import ModuleInitializationError, ModuleStartError
from .module_definition import Module, ModuleDependencies, ModuleStatus

logger = logging.getLogger(__name__)


HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


class ModuleRegistry:
    """
    Registry for instantiated modules.

    Modules are initialized and started in the order they were registered
    and stopped in reverse order. ``timeout`` (seconds) bounds each
    individual lifecycle call when set.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._modules: Dict[str, Module] = {}
        self._routed: set = set()
        self.timeout = timeout

    def register(self, module: Module) -> None:
        """
        Register a module instance.

        Raises:
            ValueError: If a module with the same name is already registered
        """
        if module.name in self._modules:
            raise ValueError(f"Module '{module.name}' is already registered")

        self._modules[module.name] = module
        logger.info(f"Registered module: {module.name}")

    def get_module(self, name: str) -> Optional[Module]:
        """Get a module by name."""
        return self._modules.get(name)

    def get_all_modules(self) -> Dict[str, Module]:
        """Get all registered modules."""
        return self._modules.copy()

    def get_module_names(self) -> List[str]:
        """Module names in registration order."""
        return list(self._modules.keys())

    def __len__(self) -> int:
        return len(self._modules)

    async def _call(self, awaitable: Awaitable):
        if self.timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    async def initialize_all(self, deps: ModuleDependencies) -> None:
        """
        Initialize every module in order, stopping at the first failure.

        Raises:
            ModuleInitializationError: For the first module that fails; later
                modules are left uninitialized
        """
        for name, module in self._modules.items():
            try:
                await self._call(module.initialize(deps))
            except Exception as e:
                module._set_status(ModuleStatus.ERROR, e)
                logger.error(f"Failed to initialize module {name}: {e}")
                raise ModuleInitializationError(name, e) from e

            module._set_status(ModuleStatus.INITIALIZED)
            logger.info(f"Initialized module: {name}")

    def register_all_routes(self, router: APIRouter) -> None:
        """Let each initialized module add its routes, once per module."""
        for name, module in self._modules.items():
            if name in self._routed:
                continue
            if module.status not in (ModuleStatus.INITIALIZED, ModuleStatus.STARTED):
                logger.warning(f"Skipping routes for module {name} in state {module.status.value}")
                continue

            module.register_routes(router)
            self._routed.add(name)
            logger.debug(f"Registered routes for module: {name}")

    async def start_all(self) -> None:
        """
        Start every module in order, stopping at the first failure.

        Raises:
            ModuleStartError: For the first module that fails to start
        """
        for name, module in self._modules.items():
            try:
                await self._call(module.start())
            except Exception as e:
                module._set_status(ModuleStatus.ERROR, e)
                logger.error(f"Failed to start module {name}: {e}")
                raise ModuleStartError(name, e) from e

            module._set_status(ModuleStatus.STARTED)
            logger.info(f"Started module: {name}")

    async def stop_all(self) -> Dict[str, Exception]:
        """
        Stop modules in reverse registration order.

        Every module is attempted; failures are logged and returned rather
        than raised. Modules that were never initialized are skipped.
        """
        errors: Dict[str, Exception] = {}
        for name in reversed(list(self._modules)):
            module = self._modules[name]
            if module.status in (ModuleStatus.INSTANTIATED, ModuleStatus.STOPPED):
                continue

            try:
                await self._call(module.stop())
                module._set_status(ModuleStatus.STOPPED)
                logger.info(f"Stopped module: {name}")
            except Exception as e:
                module._set_status(ModuleStatus.ERROR, e)
                logger.error(f"Error stopping module {name}: {e}")
                errors[name] = e

        return errors

    async def health_check_all(self) -> Dict[str, Optional[Exception]]:
        """Check every module; the value is the failure or None when healthy."""
        results: Dict[str, Optional[Exception]] = {}
        for name, module in self._modules.items():
            try:
                await self._call(module.health())
                results[name] = None
            except Exception as e:
                logger.warning(f"Health check failed for module {name}: {e}")
                results[name] = e
        return results

    async def health_report(self) -> Dict[str, object]:
        """
        Aggregate module health.

        Returns:
            ``{"status": "healthy" | "unhealthy", "modules": {name: str}}``
        """
        results = await self.health_check_all()
        modules = {}
        for name, error in results.items():
            modules[name] = HEALTHY if error is None else f"{UNHEALTHY}: {error}"

        status = HEALTHY if all(error is None for error in results.values()) else UNHEALTHY
        return {"status": status, "modules": modules}
