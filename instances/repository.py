"""
Instances - Repository.

============================================================
PURPOSE
============================================================
Row-level primitives on the lab_instances table.

Each method is one short unit of work: open a session,
run a single statement, commit. No method holds a lock
across statements.

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from database.models import InstanceModel


logger = logging.getLogger(__name__)


class InstanceRepository:
    """Persistence for instance records."""

    def __init__(self, session_factory: async_sessionmaker):
        """
        Args:
            session_factory: Async session factory
        """
        self._session_factory = session_factory

    async def create(
        self,
        start_time: datetime,
        last_heartbeat: datetime,
        ip_address: Optional[str] = None,
        hostname: Optional[str] = None,
        port: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        is_primary: bool = False,
    ) -> InstanceModel:
        """Insert a new instance record and return it."""
        async with self._session_factory() as session:
            instance = InstanceModel(
                ip_address=ip_address,
                hostname=hostname,
                port=port,
                start_time=start_time,
                last_heartbeat=last_heartbeat,
                is_primary=is_primary,
                instance_metadata=metadata or {},
            )
            session.add(instance)
            await session.commit()
            return instance

    async def update_heartbeat(
        self,
        instance_id: str,
        at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Refresh last_heartbeat (and metadata). Returns rows updated."""
        values: Dict[str, Any] = {"last_heartbeat": at}
        if metadata is not None:
            values["instance_metadata"] = metadata

        async with self._session_factory() as session:
            result = await session.execute(
                update(InstanceModel)
                .where(InstanceModel.instance_id == instance_id)
                .values(**values)
            )
            await session.commit()
            return result.rowcount

    async def set_primary(self, instance_id: str, value: bool) -> int:
        """Write the leadership flag of one instance."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(InstanceModel)
                .where(InstanceModel.instance_id == instance_id)
                .values(is_primary=value)
            )
            await session.commit()
            return result.rowcount

    async def list_live(self, since: datetime) -> List[InstanceModel]:
        """
        Instances with a heartbeat newer than ``since``.

        Ordered by start_time ascending: position 0 is the
        intended leader. Equal start times keep the store's
        natural order.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(InstanceModel)
                .where(InstanceModel.last_heartbeat > since)
                .order_by(InstanceModel.start_time.asc())
            )
            return list(result.scalars().all())

    async def list_all(self) -> List[InstanceModel]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(InstanceModel).order_by(InstanceModel.start_time.asc())
            )
            return list(result.scalars().all())

    async def get(self, instance_id: str) -> Optional[InstanceModel]:
        async with self._session_factory() as session:
            return await session.get(InstanceModel, instance_id)

    async def count(self, since: Optional[datetime] = None) -> int:
        """Count instances, optionally only those seen after ``since``."""
        stmt = select(func.count()).select_from(InstanceModel)
        if since is not None:
            stmt = stmt.where(InstanceModel.last_heartbeat > since)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def delete_stale(self, before: datetime) -> int:
        """Delete instances whose heartbeat is older than ``before``."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(InstanceModel).where(InstanceModel.last_heartbeat < before)
            )
            await session.commit()
            return result.rowcount

    async def delete(self, instance_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(InstanceModel).where(InstanceModel.instance_id == instance_id)
            )
            await session.commit()
            return result.rowcount
