"""
Replication - Source Side.

Builds the paged query behind the get-table endpoint:
rows updated at or after a high-water mark, oldest first.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from database.models import Base
from transfer.chunked import QueryPage


def build_table_query(
    model: Type[Base],
    updated_after: Optional[datetime] = None,
) -> Select:
    """
    Select raw column values ordered by updated_at, then
    primary key, so paging is stable across requests.
    """
    table = model.__table__
    stmt = select(table)
    if updated_after is not None:
        stmt = stmt.where(table.c.updated_at >= updated_after)
    return stmt.order_by(table.c.updated_at.asc(), *table.primary_key.columns)


def table_page_query(
    session_factory: async_sessionmaker,
    model: Type[Base],
    updated_after: Optional[datetime] = None,
) -> QueryPage:
    """Return a (offset, limit) page function over one table."""
    stmt = build_table_query(model, updated_after)

    async def query_page(offset: int, limit: int) -> List[Dict[str, Any]]:
        async with session_factory() as session:
            result = await session.execute(stmt.offset(offset).limit(limit))
            return [dict(row) for row in result.mappings().all()]

    return query_page
