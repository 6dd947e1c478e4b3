"""
Customer Repository Tests

SQLAlchemy repositories against a temporary SQLite database. Skipped when
aiosqlite is not installed.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from modules.customer.domain import Customer, CustomerStatus, ListCustomersParams, SearchCustomersParams
from modules.customer.repository import CustomerQueryRepository, CustomerRepository, metadata
from shared.domain_errors import ALREADY_EXISTS, CONCURRENCY_CONFLICT, DomainError


@pytest_asyncio.fixture
async def engine(sqlite_url):
    engine = create_async_engine(sqlite_url)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(engine):
    repository = CustomerRepository(engine)
    names = [("Jane Doe", "jane@example.com"), ("John Smith", "john@example.com"), ("Ada Lovelace", "ada@example.com")]
    customers = []
    for name, email in names:
        customer = Customer.create(name, email)
        await repository.add(customer)
        customers.append(customer)
    return repository, customers


@pytest.mark.asyncio
async def test_add_and_load(engine):
    repository = CustomerRepository(engine)
    customer = Customer.create("Jane Doe", "jane@example.com")

    await repository.add(customer)
    loaded = await repository.get_by_id(customer.id)

    assert loaded.id == customer.id
    assert loaded.email.value == "jane@example.com"
    assert loaded.status == CustomerStatus.ACTIVE
    assert loaded.persisted_version == 0
    assert await repository.exists_by_email("jane@example.com")
    assert not await repository.exists_by_email("nobody@example.com")


@pytest.mark.asyncio
async def test_add_duplicate_email(seeded):
    repository, _ = seeded

    with pytest.raises(DomainError) as exc_info:
        await repository.add(Customer.create("Impostor", "jane@example.com"))

    assert exc_info.value.code == ALREADY_EXISTS


@pytest.mark.asyncio
async def test_update_with_optimistic_lock(seeded):
    repository, customers = seeded
    first = await repository.get_by_id(customers[0].id)
    second = await repository.get_by_id(customers[0].id)

    first.update_name("Janet Doe")
    await repository.update(first)
    assert first.persisted_version == 1

    second.update_name("Jan Doe")
    with pytest.raises(DomainError) as exc_info:
        await repository.update(second)
    assert exc_info.value.code == CONCURRENCY_CONFLICT

    reloaded = await repository.get_by_id(customers[0].id)
    assert reloaded.name == "Janet Doe"
    assert reloaded.version == 1


@pytest.mark.asyncio
async def test_deleted_customers_are_hidden(engine, seeded):
    repository, customers = seeded
    queries = CustomerQueryRepository(engine)
    customer = await repository.get_by_id(customers[1].id)
    customer.delete()
    await repository.update(customer)

    assert await repository.get_by_id(customer.id) is None
    assert await queries.get_by_id(customer.id) is None
    assert await queries.count() == 2
    assert await queries.count(ListCustomersParams(include_deleted=True)) == 3
    assert await queries.count(ListCustomersParams(status=CustomerStatus.DELETED)) == 1


@pytest.mark.asyncio
async def test_list_sorting_and_paging(engine, seeded):
    queries = CustomerQueryRepository(engine)

    result = await queries.list(ListCustomersParams(sort_by="name", sort_order="asc", limit=2))
    assert [c.name for c in result.customers] == ["Ada Lovelace", "Jane Doe"]
    assert result.pagination.total == 3
    assert result.pagination.has_next

    result = await queries.list(ListCustomersParams(sort_by="name", sort_order="asc", limit=2, page=2))
    assert [c.name for c in result.customers] == ["John Smith"]
    assert not result.pagination.has_next


@pytest.mark.asyncio
async def test_search(engine, seeded):
    queries = CustomerQueryRepository(engine)

    result = await queries.search(SearchCustomersParams(query="SMITH"))
    assert [c.name for c in result.customers] == ["John Smith"]

    result = await queries.search(SearchCustomersParams(email="ADA@example.com"))
    assert [c.name for c in result.customers] == ["Ada Lovelace"]

    result = await queries.search(SearchCustomersParams(first_name="ja", sort_by="name", sort_order="asc"))
    assert [c.name for c in result.customers] == ["Jane Doe"]

    result = await queries.search(SearchCustomersParams(last_name="doe"))
    assert [c.name for c in result.customers] == ["Jane Doe"]
