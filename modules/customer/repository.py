"""
Customer Persistence

SQLAlchemy Core repositories over the customer module's own database: a
write-side repository for the aggregate and a query repository that
returns read models.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Integer,
    MetaData,
    String,
    Table,
    and_,
    asc,
    desc,
    func,
    insert,
    or_,
    select,
    true,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from shared.domain_errors import ALREADY_EXISTS, CONCURRENCY_CONFLICT, DomainError

from .domain import (
    Customer,
    CustomerListResult,
    CustomerStatus,
    CustomerView,
    Email,
    ListCustomersParams,
    PaginationResult,
    SearchCustomersParams,
)

logger = logging.getLogger(__name__)


metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column(
        "status",
        Enum(
            CustomerStatus,
            name="customer_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=CustomerStatus.ACTIVE,
    ),
    Column("version", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def _row_to_customer(row) -> Customer:
    customer = Customer(
        name=row["name"],
        email=Email(row["email"]),
        status=CustomerStatus(row["status"]),
        id=row["id"],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
    return customer


def _row_to_view(row) -> CustomerView:
    return CustomerView(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        status=CustomerStatus(row["status"]),
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _already_exists(error: IntegrityError) -> DomainError:
    return DomainError(ALREADY_EXISTS, "customer with this email already exists", field="email", cause=error)


class CustomerRepository:
    """Write-side persistence for the Customer aggregate."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def add(self, customer: Customer) -> None:
        """
        Insert a new customer.

        Raises:
            DomainError: ALREADY_EXISTS when the email is taken
        """
        values = {
            "id": customer.id,
            "name": customer.name,
            "email": customer.email.value,
            "status": customer.status,
            "version": customer.version,
            "created_at": customer.created_at,
            "updated_at": customer.updated_at,
        }
        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(customers).values(**values))
        except IntegrityError as e:
            raise _already_exists(e) from e

        customer.mark_persisted()

    async def update(self, customer: Customer) -> None:
        """
        Persist changes to an existing customer with optimistic locking.

        The row is only updated if its version still equals the version the
        aggregate was loaded with.

        Raises:
            DomainError: CONCURRENCY_CONFLICT when the row changed underneath,
                ALREADY_EXISTS when the new email is taken
        """
        stmt = (
            update(customers)
            .where(and_(customers.c.id == customer.id, customers.c.version == customer.persisted_version))
            .values(
                name=customer.name,
                email=customer.email.value,
                status=customer.status,
                version=customer.version,
                updated_at=customer.updated_at,
            )
        )
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
        except IntegrityError as e:
            raise _already_exists(e) from e

        if result.rowcount == 0:
            logger.warning(f"Optimistic lock failed for customer {customer.id} at version {customer.persisted_version}")
            raise DomainError(
                CONCURRENCY_CONFLICT,
                f"customer {customer.id} was modified by another request",
            )
        customer.mark_persisted()

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        """Load a customer that is not deleted, or None."""
        stmt = select(customers).where(
            and_(customers.c.id == customer_id, customers.c.status != CustomerStatus.DELETED)
        )
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return _row_to_customer(row) if row else None

    async def get_by_email(self, email: str) -> Optional[Customer]:
        stmt = select(customers).where(
            and_(customers.c.email == email, customers.c.status != CustomerStatus.DELETED)
        )
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return _row_to_customer(row) if row else None

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None


class CustomerQueryRepository:
    """Read-side queries returning CustomerView models."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def get_by_id(self, customer_id: str) -> Optional[CustomerView]:
        stmt = select(customers).where(
            and_(customers.c.id == customer_id, customers.c.status != CustomerStatus.DELETED)
        )
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return _row_to_view(row) if row else None

    @staticmethod
    def _filters(params: ListCustomersParams) -> List[Any]:
        conditions = []
        if params.status is not None:
            conditions.append(customers.c.status == params.status)
        elif not params.include_deleted:
            conditions.append(customers.c.status != CustomerStatus.DELETED)

        if params.created_after is not None:
            conditions.append(customers.c.created_at >= params.created_after)
        if params.created_before is not None:
            conditions.append(customers.c.created_at <= params.created_before)
        if params.updated_after is not None:
            conditions.append(customers.c.updated_at >= params.updated_after)
        if params.updated_before is not None:
            conditions.append(customers.c.updated_at <= params.updated_before)
        return conditions

    @staticmethod
    def _search_filters(params: SearchCustomersParams) -> List[Any]:
        conditions = []
        if params.query:
            pattern = f"%{params.query}%"
            conditions.append(or_(customers.c.name.ilike(pattern), customers.c.email.ilike(pattern)))
        if params.email:
            conditions.append(customers.c.email == params.email.strip().lower())
        if params.first_name:
            conditions.append(customers.c.name.ilike(f"{params.first_name}%"))
        if params.last_name:
            conditions.append(customers.c.name.ilike(f"%{params.last_name}"))
        return conditions

    async def _page(self, params: ListCustomersParams, conditions: List[Any]) -> CustomerListResult:
        params.normalize()
        where = and_(true(), *conditions)

        order_column = customers.c[params.sort_by]
        ordering = asc(order_column) if params.sort_order == "asc" else desc(order_column)

        count_stmt = select(func.count()).select_from(customers).where(where)
        page_stmt = (
            select(customers)
            .where(where)
            .order_by(ordering, customers.c.id)
            .limit(params.limit)
            .offset(params.offset)
        )

        async with self.engine.connect() as conn:
            total = (await conn.execute(count_stmt)).scalar_one()
            rows = (await conn.execute(page_stmt)).mappings().all()

        return CustomerListResult(
            customers=[_row_to_view(row) for row in rows],
            pagination=PaginationResult.build(params.page, params.limit, total),
        )

    async def list(self, params: ListCustomersParams) -> CustomerListResult:
        return await self._page(params, self._filters(params))

    async def search(self, params: SearchCustomersParams) -> CustomerListResult:
        return await self._page(params, self._filters(params) + self._search_filters(params))

    async def count(self, params: Optional[ListCustomersParams] = None) -> int:
        conditions = self._filters(params or ListCustomersParams())
        stmt = select(func.count()).select_from(customers).where(and_(true(), *conditions))
        async with self.engine.connect() as conn:
            return (await conn.execute(stmt)).scalar_one()

