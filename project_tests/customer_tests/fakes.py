"""
In-memory customer repositories for handler and route tests.
"""

import copy
from typing import Dict, Optional

from modules.customer.customer_module import CustomerHandlers
from modules.customer.domain import (
    Customer,
    CustomerListResult,
    CustomerStatus,
    CustomerView,
    PaginationResult,
)
from shared.domain_errors import ALREADY_EXISTS, CONCURRENCY_CONFLICT, DomainError


class InMemoryCustomerStore:
    """Write and query repository over one dict, with optimistic locking."""

    def __init__(self):
        self.rows: Dict[str, Customer] = {}
        self.updates = 0

    def _load(self, customer: Optional[Customer]) -> Optional[Customer]:
        if customer is None or customer.is_deleted:
            return None
        loaded = copy.deepcopy(customer)
        loaded.clear_uncommitted_events()
        return loaded

    async def add(self, customer: Customer) -> None:
        if any(c.email == customer.email for c in self.rows.values()):
            raise DomainError(ALREADY_EXISTS, "customer with this email already exists", field="email")
        self.rows[customer.id] = copy.deepcopy(customer)
        customer.mark_persisted()

    async def update(self, customer: Customer) -> None:
        stored = self.rows.get(customer.id)
        if stored is None or stored.version != customer.persisted_version:
            raise DomainError(CONCURRENCY_CONFLICT, f"customer {customer.id} was modified by another request")
        self.rows[customer.id] = copy.deepcopy(customer)
        self.updates += 1
        customer.mark_persisted()

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        return self._load(self.rows.get(customer_id))

    async def get_by_email(self, email: str) -> Optional[Customer]:
        for customer in self.rows.values():
            if customer.email.value == email and not customer.is_deleted:
                return self._load(customer)
        return None

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None


class InMemoryCustomerQueries:
    def __init__(self, store: InMemoryCustomerStore):
        self.store = store
        self.last_params = None

    async def get_by_id(self, customer_id: str) -> Optional[CustomerView]:
        customer = await self.store.get_by_id(customer_id)
        return CustomerView.from_customer(customer) if customer else None

    async def _page(self, params, customers) -> CustomerListResult:
        self.last_params = params
        page = customers[params.offset:params.offset + params.limit]
        return CustomerListResult(
            customers=[CustomerView.from_customer(c) for c in page],
            pagination=PaginationResult.build(params.page, params.limit, len(customers)),
        )

    def _visible(self, params):
        customers = sorted(self.store.rows.values(), key=lambda c: c.name)
        if params.status is not None:
            return [c for c in customers if c.status == params.status]
        if not params.include_deleted:
            return [c for c in customers if c.status != CustomerStatus.DELETED]
        return customers

    async def list(self, params) -> CustomerListResult:
        return await self._page(params, self._visible(params))

    async def search(self, params) -> CustomerListResult:
        query = params.query.lower()
        matches = [
            c for c in self._visible(params)
            if query in c.name.lower() or query in c.email.value
        ]
        return await self._page(params, matches)


def build_handlers(event_bus=None):
    store = InMemoryCustomerStore()
    handlers = CustomerHandlers.build(store, InMemoryCustomerQueries(store), event_bus)
    return handlers, store
