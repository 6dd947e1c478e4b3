"""
Module Registry Tests

Lifecycle ordering, failure handling and health aggregation.
"""

import asyncio

import pytest
from fastapi import APIRouter

from module_manager.exceptions import ModuleInitializationError, ModuleStartError
from module_manager.module_definition import ModuleDependencies, ModuleStatus
from module_manager.module_registry import ModuleRegistry
from project_tests.module_tests.stub_modules import RecordingModule


def make_registry(*names, calls=None, **failures):
    calls = calls if calls is not None else []
    registry = ModuleRegistry()
    for name in names:
        registry.register(RecordingModule(name, calls, fail_on=failures.get(name)))
    return registry, calls


@pytest.fixture
def deps(event_bus):
    return ModuleDependencies(event_bus=event_bus)


def test_duplicate_names_rejected():
    registry, _ = make_registry("customer")

    with pytest.raises(ValueError, match="already registered"):
        registry.register(RecordingModule("customer"))
    assert len(registry) == 1


def test_lookup():
    registry, _ = make_registry("customer", "order")

    assert registry.get_module_names() == ["customer", "order"]
    assert registry.get_module("order").name == "order"
    assert registry.get_module("billing") is None
    assert set(registry.get_all_modules()) == {"customer", "order"}


@pytest.mark.asyncio
async def test_lifecycle_runs_in_order_and_stops_in_reverse(deps):
    registry, calls = make_registry("customer", "order", "user")

    await registry.initialize_all(deps)
    registry.register_all_routes(APIRouter())
    await registry.start_all()
    errors = await registry.stop_all()

    assert errors == {}
    assert calls == [
        "customer.initialize", "order.initialize", "user.initialize",
        "customer.register_routes", "order.register_routes", "user.register_routes",
        "customer.start", "order.start", "user.start",
        "user.stop", "order.stop", "customer.stop",
    ]
    assert all(m.get_status() == ModuleStatus.STOPPED for m in registry.get_all_modules().values())


@pytest.mark.asyncio
async def test_dependencies_are_shared(deps):
    registry, _ = make_registry("customer", "order")

    await registry.initialize_all(deps)

    assert registry.get_module("customer").deps is deps
    assert registry.get_module("order").deps is deps


@pytest.mark.asyncio
async def test_initialize_stops_at_first_failure(deps):
    registry, calls = make_registry("customer", "order", "user", order="initialize")

    with pytest.raises(ModuleInitializationError) as exc_info:
        await registry.initialize_all(deps)

    assert exc_info.value.name == "order"
    assert calls == ["customer.initialize", "order.initialize"]
    order = registry.get_module("order")
    assert order.get_status() == ModuleStatus.ERROR
    assert order.get_error_message() == "order initialize failed"
    assert registry.get_module("user").get_status() == ModuleStatus.INSTANTIATED


@pytest.mark.asyncio
async def test_start_stops_at_first_failure(deps):
    registry, calls = make_registry("customer", "order", "user", customer="start")
    await registry.initialize_all(deps)

    with pytest.raises(ModuleStartError):
        await registry.start_all()

    assert "order.start" not in calls


@pytest.mark.asyncio
async def test_stop_attempts_every_module_and_collects_errors(deps):
    registry, calls = make_registry("customer", "order", "user", order="stop")
    await registry.initialize_all(deps)
    await registry.start_all()
    calls.clear()

    errors = await registry.stop_all()

    assert list(errors) == ["order"]
    assert calls == ["user.stop", "order.stop", "customer.stop"]
    assert registry.get_module("customer").get_status() == ModuleStatus.STOPPED


@pytest.mark.asyncio
async def test_stop_skips_modules_never_initialized(deps):
    registry, calls = make_registry("customer", "order")

    errors = await registry.stop_all()

    assert errors == {}
    assert calls == []


def test_routes_only_for_initialized_modules_and_only_once():
    registry, calls = make_registry("customer")
    router = APIRouter()

    registry.register_all_routes(router)
    assert calls == []

    registry.get_module("customer")._set_status(ModuleStatus.INITIALIZED)
    registry.register_all_routes(router)
    registry.register_all_routes(router)

    assert calls == ["customer.register_routes"]
    assert [route.path for route in router.routes] == ["/customer/ping"]


@pytest.mark.asyncio
async def test_health_report():
    registry, _ = make_registry("customer", "order")

    report = await registry.health_report()
    assert report == {"status": "healthy", "modules": {"customer": "healthy", "order": "healthy"}}

    registry.get_module("order").unhealthy = "database is not reachable"
    report = await registry.health_report()
    assert report["status"] == "unhealthy"
    assert report["modules"]["customer"] == "healthy"
    assert report["modules"]["order"] == "unhealthy: database is not reachable"


@pytest.mark.asyncio
async def test_health_report_with_no_modules():
    assert await ModuleRegistry().health_report() == {"status": "healthy", "modules": {}}


@pytest.mark.asyncio
async def test_lifecycle_timeout(deps):
    registry = ModuleRegistry(timeout=0.01)
    registry.register(RecordingModule("slow", delay=1))

    with pytest.raises(ModuleInitializationError) as exc_info:
        await registry.initialize_all(deps)

    assert isinstance(exc_info.value.cause, asyncio.TimeoutError)
