"""
Database - Async Engine.

============================================================
RESPONSIBILITY
============================================================
Owns the async SQLAlchemy engine and session factory for
the shared relational store.

- One Database object per process, passed explicitly
- Sessions are short-lived: one unit of work each
- No multi-statement locks are ever held

============================================================
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import DatabaseConfig
from core.exceptions import StoreError

from .models import Base


logger = logging.getLogger(__name__)


def _safe_url(url: str) -> str:
    """Strip credentials from a URL for logging."""
    return url.split("@")[-1]


class Database:
    """
    Async engine and session factory.

    Usage:
        database = Database(config.database)
        await database.connect()
        async with database.session() as session:
            ...
        await database.dispose()
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Create the engine and session factory (idempotent)."""
        if self._engine is not None:
            return

        url = self._config.url
        logger.info(f"Creating database engine for: {_safe_url(url)}")

        kwargs = {"echo": self._config.echo}
        if not url.startswith("sqlite"):
            kwargs.update(pool_size=10, max_overflow=20, pool_recycle=1800, pool_pre_ping=True)

        self._engine = create_async_engine(url, **kwargs)

        if url.startswith("sqlite"):
            @event.listens_for(self._engine.sync_engine, "connect")
            def _enable_sqlite_fks(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

    async def dispose(self) -> None:
        """Dispose the engine and its pool."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None

    async def create_all(self) -> None:
        """Create every table from the ORM metadata (tests and tooling)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # --------------------------------------------------------
    # ACCESS
    # --------------------------------------------------------

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreError("Database is not connected")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            raise StoreError("Database is not connected")
        return self._session_factory

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session context manager with rollback on error.

        The caller commits explicitly.
        """
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                logger.error(f"Database error, rolling back: {e}")
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """Run SELECT 1 against the store."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
