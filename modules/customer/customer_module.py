"""
Customer Module Implementation

Customer management: create, read, update, soft-delete, list and search,
backed by the module's own database.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter

from module_manager.module_definition import Module, ModuleDependencies
from shared.events import EventBus, log_event_handler

from .domain import (
    CUSTOMER_CREATED,
    CUSTOMER_DELETED,
    CUSTOMER_EMAIL_CHANGED,
    CUSTOMER_NAME_UPDATED,
    CUSTOMER_STATUS_CHANGED,
)
from .handlers import (
    CreateCustomerHandler,
    DeleteCustomerHandler,
    GetCustomerHandler,
    ListCustomersHandler,
    SearchCustomersHandler,
    UpdateCustomerHandler,
)
from .repository import CustomerQueryRepository, CustomerRepository
from .routes import build_customer_router


logger = logging.getLogger(__name__)


CUSTOMER_EVENTS = (
    CUSTOMER_CREATED,
    CUSTOMER_NAME_UPDATED,
    CUSTOMER_EMAIL_CHANGED,
    CUSTOMER_STATUS_CHANGED,
    CUSTOMER_DELETED,
)


@dataclass
class CustomerHandlers:
    create: CreateCustomerHandler
    update: UpdateCustomerHandler
    delete: DeleteCustomerHandler
    get: GetCustomerHandler
    list: ListCustomersHandler
    search: SearchCustomersHandler

    @classmethod
    def build(cls, repository, query_repository, event_bus: Optional[EventBus]) -> "CustomerHandlers":
        return cls(
            create=CreateCustomerHandler(repository, event_bus),
            update=UpdateCustomerHandler(repository, event_bus),
            delete=DeleteCustomerHandler(repository, event_bus),
            get=GetCustomerHandler(query_repository),
            list=ListCustomersHandler(query_repository),
            search=SearchCustomersHandler(query_repository),
        )


class CustomerModule(Module):
    """Customer business module."""

    def __init__(self):
        super().__init__()
        self.handlers: Optional[CustomerHandlers] = None
        self._event_bus: Optional[EventBus] = None
        self._database_manager = None

    @property
    def name(self) -> str:
        return "customer"

    async def initialize(self, deps: ModuleDependencies) -> None:
        logger.info(f"Initializing {self.name} module...")

        if deps.database_manager is None:
            raise RuntimeError("customer module requires a database manager")

        self._event_bus = deps.event_bus
        self._database_manager = deps.database_manager

        engine = await deps.database_manager.get_connection(self.name)
        self.handlers = CustomerHandlers.build(
            CustomerRepository(engine),
            CustomerQueryRepository(engine),
            self._event_bus,
        )

        logger.info(f"{self.name} module initialized successfully")

    def register_routes(self, router: APIRouter) -> None:
        if self.handlers is None:
            raise RuntimeError("customer module routes requested before initialization")
        router.include_router(build_customer_router(self.handlers))
        logger.info(f"Registered routes for {self.name} module")

    async def health(self) -> None:
        if self.handlers is None:
            raise RuntimeError("customer handlers not initialized")
        if not await self._database_manager.health_check(self.name):
            raise RuntimeError("customer database is not reachable")

    async def start(self) -> None:
        logger.info(f"Starting {self.name} module...")
        if self._event_bus is not None:
            for event_type in CUSTOMER_EVENTS:
                self._event_bus.subscribe(event_type, log_event_handler)

    async def stop(self) -> None:
        logger.info(f"Stopping {self.name} module...")
        if self._event_bus is not None and hasattr(self._event_bus, "unsubscribe"):
            for event_type in CUSTOMER_EVENTS:
                self._event_bus.unsubscribe(event_type, log_event_handler)
