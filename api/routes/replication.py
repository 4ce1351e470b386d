"""
Replication Routes.

============================================================
ENDPOINTS
============================================================
GET /replication/source/get-table/{table}
    Rows of a replicated table, updated at or after
    updated_after, oldest first, as one JSON array.
    Requires REPLICATION_ROLE=source (418 otherwise).

GET /replication/destination/update
    Run one replication from the configured source.
    Requires REPLICATION_ROLE=destination (418 otherwise).

Both require a bearer API key.

============================================================
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from replication.source import table_page_query
from replication.tables import find_model_by_table_name
from transfer.export import CONTENT_TYPES, paginated_export

from ..auth import require_api_key
from ..errors import AppError
from ..schemas import ErrorResponse, ReplicationUpdateResponse
from ..streaming import stream_fragments


router = APIRouter(
    prefix="/replication",
    tags=["replication"],
    dependencies=[Depends(require_api_key)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        418: {"model": ErrorResponse},
    },
)


def require_role(role: str):
    """Dependency rejecting requests unless this deployment has ``role``."""

    async def check_role(request: Request) -> None:
        if request.app.state.context.config.replication.role != role:
            raise AppError(
                f"Serving as a replication {role} is not enabled. "
                f"Set REPLICATION_ROLE to '{role}' to enable this feature.",
                status=418,
            )

    return check_role


@router.get(
    "/source/get-table/{table}",
    dependencies=[Depends(require_role("source"))],
)
async def get_table(
    request: Request,
    table: str,
    limit: int = Query(..., ge=1, description="Maximum number of rows"),
    offset: int = Query(0, ge=0, description="Rows to skip"),
    updated_after: Optional[datetime] = Query(None, description="Only rows updated at or after"),
):
    context = request.app.state.context
    model = find_model_by_table_name(table)

    query_page = table_page_query(context.database.session_factory, model, updated_after)
    fragments = paginated_export(
        query_page,
        "json",
        page_size=context.config.database.chunk_size,
        limit=limit,
        initial_offset=offset,
    )
    return await stream_fragments(fragments, CONTENT_TYPES["json"])


@router.get(
    "/destination/update",
    response_model=ReplicationUpdateResponse,
    dependencies=[Depends(require_role("destination"))],
)
async def update_destination(request: Request) -> ReplicationUpdateResponse:
    counts = await request.app.state.context.run_replication()
    return ReplicationUpdateResponse(message="Success!", tables=counts)
