"""
Customer Application Handlers

Command handlers change customers and publish the resulting domain
events; query handlers read from the query repository.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from shared.domain_errors import ALREADY_EXISTS, INVALID_INPUT, DomainError, NotFoundError
from shared.events import EventBus

from .domain import (
    Customer,
    CustomerListResult,
    CustomerStatus,
    CustomerView,
    Email,
    ListCustomersParams,
    SearchCustomersParams,
)

logger = logging.getLogger(__name__)


# Commands

@dataclass
class CreateCustomerCommand:
    name: str
    email: str


@dataclass
class UpdateCustomerCommand:
    customer_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


@dataclass
class DeleteCustomerCommand:
    customer_id: str


async def publish_events(event_bus: Optional[EventBus], customer: Customer) -> None:
    """Publish and clear the customer's pending events; failures are only logged."""
    events = customer.get_uncommitted_events()
    customer.clear_uncommitted_events()
    if event_bus is None or not events:
        return

    try:
        await event_bus.publish_all(events)
    except Exception as e:
        logger.warning(f"Failed to publish events for customer {customer.id}: {e}")


def _email_taken() -> DomainError:
    return DomainError(ALREADY_EXISTS, "customer with this email already exists", field="email")


class CreateCustomerHandler:
    def __init__(self, repository, event_bus: Optional[EventBus] = None):
        self.repository = repository
        self.event_bus = event_bus

    async def handle(self, command: CreateCustomerCommand) -> CustomerView:
        """
        Create a customer.

        Raises:
            ValidationErrors: If the name or email is invalid
            DomainError: ALREADY_EXISTS if the email belongs to another customer
        """
        customer = Customer.create(command.name, command.email)

        if await self.repository.exists_by_email(customer.email.value):
            raise _email_taken()

        # The unique constraint still catches a concurrent insert
        await self.repository.add(customer)
        logger.info(f"Customer created: {customer.id}")

        await publish_events(self.event_bus, customer)
        return CustomerView.from_customer(customer)


class UpdateCustomerHandler:
    def __init__(self, repository, event_bus: Optional[EventBus] = None):
        self.repository = repository
        self.event_bus = event_bus

    async def handle(self, command: UpdateCustomerCommand) -> CustomerView:
        customer = await self.repository.get_by_id(command.customer_id)
        if customer is None:
            raise NotFoundError("customer", command.customer_id)

        if command.name is not None:
            customer.update_name(command.name)

        if command.email is not None:
            new_email = Email.parse(command.email)
            if new_email != customer.email:
                other = await self.repository.get_by_email(new_email.value)
                if other is not None and other.id != customer.id:
                    raise _email_taken()
                customer.change_email(new_email.value)

        if command.status is not None:
            self._apply_status(customer, command.status)

        if customer.version == customer.persisted_version:
            return CustomerView.from_customer(customer)

        await self.repository.update(customer)
        logger.info(f"Customer updated: {customer.id} (version {customer.version})")

        await publish_events(self.event_bus, customer)
        return CustomerView.from_customer(customer)

    @staticmethod
    def _apply_status(customer: Customer, status: str) -> None:
        if status == CustomerStatus.ACTIVE.value:
            customer.activate()
        elif status == CustomerStatus.INACTIVE.value:
            customer.deactivate()
        else:
            raise DomainError(INVALID_INPUT, f"invalid status: {status}", field="status")


class DeleteCustomerHandler:
    def __init__(self, repository, event_bus: Optional[EventBus] = None):
        self.repository = repository
        self.event_bus = event_bus

    async def handle(self, command: DeleteCustomerCommand) -> None:
        """Soft-delete a customer; the row is kept with status ``deleted``."""
        customer = await self.repository.get_by_id(command.customer_id)
        if customer is None:
            raise NotFoundError("customer", command.customer_id)

        customer.delete()
        await self.repository.update(customer)
        logger.info(f"Customer deleted: {customer.id}")

        await publish_events(self.event_bus, customer)


# Queries

class GetCustomerHandler:
    def __init__(self, query_repository):
        self.query_repository = query_repository

    async def handle(self, customer_id: str) -> CustomerView:
        view = await self.query_repository.get_by_id(customer_id)
        if view is None:
            raise NotFoundError("customer", customer_id)
        return view


class ListCustomersHandler:
    def __init__(self, query_repository):
        self.query_repository = query_repository

    async def handle(self, params: ListCustomersParams) -> CustomerListResult:
        params.normalize()
        return await self.query_repository.list(params)


class SearchCustomersHandler:
    def __init__(self, query_repository):
        self.query_repository = query_repository

    async def handle(self, params: SearchCustomersParams) -> CustomerListResult:
        params.normalize()
        return await self.query_repository.search(params)
