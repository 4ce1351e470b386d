"""
Replication - Replicated Tables.

============================================================
PURPOSE
============================================================
The fixed set of business tables copied between
deployments, plus the row-level helpers both sides need:

- Resolve a table name to its ORM model
- Coerce wire rows (JSON) to column types
- Bulk-upsert rows by primary key (last write wins)

Tables are listed in foreign-key order so a destination
never receives a child row before its parent.

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Type

from sqlalchemy import Column, DateTime, Table
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import ensure_utc
from core.exceptions import UnknownTableError
from database.models import (
    Base,
    ParticipantModel,
    ResponseModel,
    SessionModel,
    StudyModel,
)


logger = logging.getLogger(__name__)


REPLICATED_MODELS: List[Type[Base]] = [
    StudyModel,
    ParticipantModel,
    SessionModel,
    ResponseModel,
]

REPLICATED_TABLES: List[str] = [model.__tablename__ for model in REPLICATED_MODELS]


def find_model_by_table_name(table_name: str) -> Type[Base]:
    """
    Resolve a replicated table name to its model.

    Raises:
        UnknownTableError: The table is not replicated
    """
    for model in REPLICATED_MODELS:
        if model.__tablename__ == table_name:
            return model
    raise UnknownTableError(table_name)


def get_primary_key_columns(table: Table) -> List[str]:
    return [column.name for column in table.primary_key.columns]


def get_non_primary_key_columns(table: Table) -> List[str]:
    return [column.name for column in table.columns if not column.primary_key]


def _is_datetime_column(column: Column) -> bool:
    column_type = column.type
    return isinstance(column_type, DateTime) or isinstance(
        getattr(column_type, "impl", None), DateTime
    )


def _parse_datetime(value: Any) -> Any:
    if isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


def coerce_row(table: Table, row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a wire row to local column values.

    Unknown keys are dropped; ISO-8601 strings in datetime
    columns become aware UTC datetimes.
    """
    result = {}
    for column in table.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if value is not None and _is_datetime_column(column):
            value = _parse_datetime(value)
        result[column.name] = value
    return result


# ============================================================
# UPSERT
# ============================================================

async def upsert_rows(
    session: AsyncSession,
    model: Type[Base],
    rows: Iterable[Dict[str, Any]],
) -> int:
    """
    Insert rows by primary key, overwriting every non-key
    column of rows that already exist.

    The caller commits.

    Returns:
        Number of rows written
    """
    table: Table = model.__table__
    values = [coerce_row(table, row) for row in rows]
    if not values:
        return 0

    dialect = session.get_bind().dialect.name
    primary_keys = get_primary_key_columns(table)
    updatable = get_non_primary_key_columns(table)

    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(table)
        stmt = stmt.on_conflict_do_update(
            index_elements=primary_keys,
            set_={name: stmt.excluded[name] for name in updatable},
        )
        await session.execute(stmt, values)
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(table)
        stmt = stmt.on_duplicate_key_update(
            {name: stmt.inserted[name] for name in updatable}
        )
        await session.execute(stmt, values)
    else:
        for value in values:
            await session.merge(model(**value))

    logger.debug(f"Upserted {len(values)} rows into {table.name}")
    return len(values)
