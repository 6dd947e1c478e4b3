"""
User Module Implementation

Skeleton user module with its own database and a status route.
"""

import logging

from fastapi import APIRouter

from module_manager.module_definition import Module, ModuleDependencies
from shared.http import success_response


logger = logging.getLogger(__name__)


class UserModule(Module):
    """User business module (skeleton)."""

    def __init__(self):
        super().__init__()
        self._database_manager = None

    @property
    def name(self) -> str:
        return "user"

    async def initialize(self, deps: ModuleDependencies) -> None:
        logger.info(f"Initializing {self.name} module...")
        self._database_manager = deps.database_manager
        if self._database_manager is not None:
            await self._database_manager.get_connection(self.name)

    def register_routes(self, router: APIRouter) -> None:
        users = APIRouter(prefix="/users", tags=["users"])

        @users.get("")
        async def user_status():
            return success_response({"module": self.name, "status": "skeleton"})

        router.include_router(users)

    async def health(self) -> None:
        if self._database_manager is not None and not await self._database_manager.health_check(self.name):
            raise RuntimeError("user database is not reachable")
