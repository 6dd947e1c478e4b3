"""
Stub modules that record lifecycle calls.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter

from module_manager.module_definition import Module, ModuleDependencies


class RecordingModule(Module):
    """Module that appends ``<name>.<hook>`` to a shared call log."""

    def __init__(self, module_name: str, calls: Optional[List[str]] = None,
                 fail_on: Optional[str] = None, delay: float = 0):
        super().__init__()
        self._name = module_name
        self.calls = calls if calls is not None else []
        self.fail_on = fail_on
        self.delay = delay
        self.deps: Optional[ModuleDependencies] = None
        self.unhealthy: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    async def _record(self, hook: str) -> None:
        self.calls.append(f"{self._name}.{hook}")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on == hook:
            raise RuntimeError(f"{self._name} {hook} failed")

    async def initialize(self, deps: ModuleDependencies) -> None:
        self.deps = deps
        await self._record("initialize")

    def register_routes(self, router: APIRouter) -> None:
        self.calls.append(f"{self._name}.register_routes")
        name = self._name

        @router.get(f"/{name}/ping")
        async def ping():
            return {"module": name}

    async def health(self) -> None:
        if self.unhealthy:
            raise RuntimeError(self.unhealthy)

    async def start(self) -> None:
        await self._record("start")

    async def stop(self) -> None:
        await self._record("stop")
