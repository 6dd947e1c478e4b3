"""
Shared test fixtures.

Nothing here needs a running PostgreSQL server: connection tests use a
fake engine, migration tests use an in-memory driver, and the optional
integration tests use a SQLite file through aiosqlite.
"""

from typing import List, Tuple

import pytest

from db.migration_drivers import MigrationDriver
from shared.events import InMemoryEventBus


class FakeConnection:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine

    async def __aenter__(self):
        if self.engine.fail_connect:
            raise ConnectionError("connection refused")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, statement, *args, **kwargs):
        self.engine.executed.append(str(statement))


class FakeEngine:
    """Stands in for an AsyncEngine: connect() and dispose() only."""

    def __init__(self, url=None, fail_connect: bool = False, fail_dispose: bool = False, **options):
        self.url = url
        self.options = options
        self.fail_connect = fail_connect
        self.fail_dispose = fail_dispose
        self.executed: List[str] = []
        self.disposed = False

    def connect(self):
        return FakeConnection(self)

    async def dispose(self):
        if self.fail_dispose:
            raise RuntimeError("dispose failed")
        self.disposed = True


class EngineFactory:
    """Records every engine it creates."""

    def __init__(self, fail_connect: bool = False):
        self.fail_connect = fail_connect
        self.engines: List[FakeEngine] = []

    def __call__(self, url, **options) -> FakeEngine:
        engine = FakeEngine(url, fail_connect=self.fail_connect, **options)
        self.engines.append(engine)
        return engine


class InMemoryMigrationDriver(MigrationDriver):
    """Keeps the version row and applied scripts in memory."""

    def __init__(self, engine=None, fail_on: str = None):
        super().__init__(engine)
        self.state: Tuple[int, bool] = (0, False)
        self.scripts: List[str] = []
        self.tables = ["schema_migrations"]
        self.fail_on = fail_on
        self.dropped = False
        self.closed = False

    async def get_state(self) -> Tuple[int, bool]:
        return self.state

    async def set_state(self, version: int, dirty: bool) -> None:
        self.state = (version, dirty)

    async def run_script(self, script: str) -> None:
        if self.fail_on and self.fail_on in script:
            raise RuntimeError(f"syntax error near {self.fail_on}")
        self.scripts.append(script.strip())

    async def list_tables(self) -> List[str]:
        return list(self.tables)

    async def drop_all(self) -> None:
        self.dropped = True
        self.tables = []
        self.state = (0, False)

    async def close(self) -> None:
        self.closed = True


def write_migration(directory, version: int, title: str, up: str = None, down: str = None) -> None:
    prefix = f"{version:06d}_{title}"
    (directory / f"{prefix}.up.sql").write_text(up or f"-- up {version}\n", encoding="utf-8")
    (directory / f"{prefix}.down.sql").write_text(down or f"-- down {version}\n", encoding="utf-8")


@pytest.fixture
def event_bus():
    return InMemoryEventBus()


@pytest.fixture
def engine_factory():
    return EngineFactory()


@pytest.fixture
def migrations_dir(tmp_path):
    """Three migrations: 1, 2 and 3."""
    directory = tmp_path / "migrations"
    directory.mkdir()
    write_migration(directory, 1, "create_widgets")
    write_migration(directory, 2, "add_widget_color")
    write_migration(directory, 3, "add_widget_index")
    return directory


@pytest.fixture
def sqlite_url(tmp_path):
    pytest.importorskip("aiosqlite")
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
