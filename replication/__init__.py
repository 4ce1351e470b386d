"""
Replication Package.

Pull-based replication of business tables from a source
deployment to a destination deployment.
"""

from .client import ReplicationClient
from .replicator import Replicator
from .service import ReplicationService
from .source import build_table_query, table_page_query
from .tables import (
    REPLICATED_TABLES,
    coerce_row,
    find_model_by_table_name,
    get_non_primary_key_columns,
    upsert_rows,
)

__all__ = [
    "ReplicationClient",
    "Replicator",
    "ReplicationService",
    "build_table_query",
    "table_page_query",
    "REPLICATED_TABLES",
    "coerce_row",
    "find_model_by_table_name",
    "get_non_primary_key_columns",
    "upsert_rows",
]
