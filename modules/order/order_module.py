"""
Order Module Implementation

Skeleton order module: owns the orders database and exposes a status
route until order management is built out.
"""

import logging
from fastapi import APIRouter

from module_manager.module_definition import Module, ModuleDependencies
from shared.http import success_response


logger = logging.getLogger(__name__)


class OrderModule(Module):
    """Order business module (skeleton)."""

    def __init__(self):
        super().__init__()
        self._event_bus = None
        self._database_manager = None

    @property
    def name(self) -> str:
        return "order"

    async def initialize(self, deps: ModuleDependencies) -> None:
        logger.info(f"Initializing {self.name} module...")
        self._event_bus = deps.event_bus
        self._database_manager = deps.database_manager
        if self._database_manager is not None:
            await self._database_manager.get_connection(self.name)
        logger.info(f"{self.name} module initialized successfully (skeleton)")

    def register_routes(self, router: APIRouter) -> None:
        orders = APIRouter(prefix="/orders", tags=["orders"])

        @orders.get("")
        async def order_status():
            return success_response({
                "message": "Order module is working!",
                "module": self.name,
                "status": "skeleton",
            })

        router.include_router(orders)
        logger.info(f"Registered routes for {self.name} module")

    async def health(self) -> None:
        if self._database_manager is None:
            return
        if not await self._database_manager.health_check(self.name):
            raise RuntimeError("order database is not reachable")
