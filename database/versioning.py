"""
Database - Schema Versioning.

============================================================
PURPOSE
============================================================
Applies Alembic migrations over the application engine and
exposes the schema-compatibility token.

The token is the revision id of the most recently applied
migration. Two deployments may only replicate between each
other when their tokens are equal.

============================================================
"""

import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import AsyncEngine


logger = logging.getLogger(__name__)


MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def get_alembic_config() -> Config:
    """Alembic configuration pointing at the bundled migrations."""
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def get_head_revision() -> Optional[str]:
    """Revision id of the newest bundled migration."""
    script = ScriptDirectory.from_config(get_alembic_config())
    return script.get_current_head()


def _upgrade(connection) -> None:
    config = get_alembic_config()
    config.attributes["connection"] = connection
    command.upgrade(config, "head")


def _current_heads(connection) -> tuple:
    context = MigrationContext.configure(connection)
    return context.get_current_heads()


async def run_migrations(engine: AsyncEngine) -> None:
    """Upgrade the database to the newest bundled migration."""
    logger.info("Applying pending migrations")
    async with engine.begin() as conn:
        await conn.run_sync(_upgrade)
    logger.info(f"Database schema at revision {await get_db_version(engine)}")


async def get_db_version(engine: AsyncEngine) -> Optional[str]:
    """
    Get the schema-compatibility token of a database.

    Returns:
        The applied head revision, several heads joined with "+",
        or None for a database that was never migrated
    """
    async with engine.connect() as conn:
        heads = await conn.run_sync(_current_heads)

    if not heads:
        return None
    return "+".join(sorted(heads))
