"""
Replication - Replicator.

============================================================
RESPONSIBILITY
============================================================
Pulls rows from a source deployment into the local store.

1. Pre-flight: local and source schema versions must match
2. For each replicated table, in foreign-key order:
   a. high-water mark = max(updated_at) locally (epoch if empty)
   b. fetch rows updated at or after the mark from the source
   c. upsert them locally and commit
   d. repeat until the source returns a short page

============================================================
FAILURE SEMANTICS
============================================================
Version mismatch, unknown tables and an unreachable source
abort the run with a typed error. Pages already committed
stay committed; the next run resumes from the new mark.

============================================================
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Set, Tuple, Type

from sqlalchemy import func, select

from core.clock import EPOCH
from core.exceptions import SchemaVersionMismatchError
from database.engine import Database
from database.models import Base
from database.versioning import get_db_version

from .client import ReplicationClient
from .tables import REPLICATED_TABLES, find_model_by_table_name, upsert_rows


logger = logging.getLogger(__name__)


_UNSET = object()


class Replicator:
    """
    One-shot replication from a source into the local store.

    Usage:
        replicator = Replicator(database, client, chunk_size=10000)
        counts = await replicator.run()
    """

    def __init__(
        self,
        database: Database,
        client: ReplicationClient,
        chunk_size: int = 10000,
    ):
        self._database = database
        self._client = client
        self._chunk_size = chunk_size

    async def run(self) -> Dict[str, int]:
        """
        Run a full replication across all replicated tables.

        Returns:
            Distinct rows received per table
        """
        logger.info("Starting replication")

        await self.verify_database_version()
        logger.info("Database versions OK")

        counts: Dict[str, int] = {}
        for table_name in REPLICATED_TABLES:
            counts[table_name] = await self.replicate_table(table_name)

        logger.info(f"Finished replication: {counts}")
        return counts

    async def verify_database_version(self) -> None:
        """
        An unmigrated store on either side never matches.

        Raises:
            SchemaVersionMismatchError: Source and local schemas differ
        """
        info = await self._client.get_info()
        source_version: Optional[str] = info.get("db_version")
        destination_version = await get_db_version(self._database.engine)

        if source_version is None or source_version != destination_version:
            raise SchemaVersionMismatchError(source_version, destination_version)

    async def get_high_water_mark(self, model: Type[Base]) -> datetime:
        """Newest local updated_at of a table, or the epoch."""
        table = model.__table__
        async with self._database.session() as session:
            result = await session.execute(select(func.max(table.c.updated_at)))
            mark = result.scalar_one_or_none()
        return mark or EPOCH

    async def replicate_table(self, table_name: str) -> int:
        """
        Replicate one table until the source is exhausted.

        If the mark did not move after a full page (more than
        one page of rows share one updated_at), the next request
        skips the rows already seen at that mark.

        Rows at the mark are fetched again on the next request,
        so only distinct primary keys are counted.

        Returns:
            Distinct rows received from the source
        """
        model = find_model_by_table_name(table_name)
        key_columns = [column.name for column in model.__table__.primary_key.columns]
        limit = self._chunk_size

        received: Set[Tuple] = set()
        offset = 0
        previous_mark = _UNSET

        while True:
            mark = await self.get_high_water_mark(model)
            offset = offset + limit if mark == previous_mark else 0

            rows = await self._client.get_table(table_name, mark, limit, offset)

            if rows:
                logger.info(f"Importing {len(rows)} rows into {table_name}")
                async with self._database.session() as session:
                    await upsert_rows(session, model, rows)
                    await session.commit()
                received.update(tuple(row.get(name) for name in key_columns) for row in rows)

            if len(rows) < limit:
                break
            previous_mark = mark

        return len(received)
