"""
Shared test fixtures.

Every test database is a fresh SQLite file under tmp_path,
accessed through aiosqlite.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from core.clock import MockClock
from core.config import AppConfig, DatabaseConfig, InstancesConfig
from database.engine import Database
from database.versioning import run_migrations
from runtime.context import AppContext


T0 = datetime(2025, 3, 4, 12, 0, 0, tzinfo=timezone.utc)


def sqlite_url(tmp_path, name: str = "test.db") -> str:
    return f"sqlite+aiosqlite:///{tmp_path / name}"


@pytest.fixture
def clock():
    """Mock clock starting at a fixed instant."""
    return MockClock(T0)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected database with every table created."""
    db = Database(DatabaseConfig(url=sqlite_url(tmp_path)))
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def make_context(tmp_path):
    """
    Factory for wired (but not started) application contexts,
    each with its own SQLite file. Instances are disabled
    unless an InstancesConfig is passed. With migrated=True the
    schema comes from the migrations and carries a version.
    """
    contexts = []

    async def factory(name="app.db", clock=None, migrated=False, **sections):
        sections.setdefault("instances", InstancesConfig(enabled=False))
        config = AppConfig(
            database=DatabaseConfig(url=sqlite_url(tmp_path, name), auto_migrate=False),
            **sections,
        )
        context = AppContext(config, clock=clock)
        await context.database.connect()
        if migrated:
            await run_migrations(context.database.engine)
        else:
            await context.database.create_all()
        context.wire_services()
        contexts.append(context)
        return context

    yield factory

    for context in contexts:
        await context.shutdown()
