"""
Tests for migrations and the schema-compatibility token.
"""

import pytest
import pytest_asyncio
from sqlalchemy import inspect

from core.config import DatabaseConfig
from core.exceptions import StoreError
from database.engine import Database
from database.models import Base
from database.versioning import get_db_version, get_head_revision, run_migrations


@pytest_asyncio.fixture
async def empty_database(tmp_path):
    db = Database(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'migrations.db'}"))
    await db.connect()
    yield db
    await db.dispose()


async def table_names(database):
    async with database.engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


def test_head_revision_is_latest_migration():
    assert get_head_revision() == "20250304_1939_instances_table"


@pytest.mark.asyncio
async def test_unmigrated_database_has_no_version(empty_database):
    assert await get_db_version(empty_database.engine) is None


@pytest.mark.asyncio
async def test_migrations_create_every_table(empty_database):
    await run_migrations(empty_database.engine)

    tables = set(await table_names(empty_database))
    assert set(Base.metadata.tables) <= tables
    assert await get_db_version(empty_database.engine) == get_head_revision()


@pytest.mark.asyncio
async def test_migrations_are_idempotent(empty_database):
    await run_migrations(empty_database.engine)
    await run_migrations(empty_database.engine)

    assert await get_db_version(empty_database.engine) == get_head_revision()


@pytest.mark.asyncio
async def test_health_check(empty_database):
    assert await empty_database.health_check() is True


def test_disconnected_database_raises():
    db = Database(DatabaseConfig())
    with pytest.raises(StoreError):
        db.engine
