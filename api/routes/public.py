"""
Public routes: liveness and deployment info.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from database.versioning import get_db_version

from ..schemas import InfoResponse


router = APIRouter(tags=["main"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "labsync API: ✅"


@router.get("/info", response_model=InfoResponse)
async def info(request: Request) -> InfoResponse:
    """
    Version information.

    db_version is the schema-compatibility token checked by
    replication destinations before they pull data.
    """
    context = request.app.state.context
    return InfoResponse(
        version=context.config.version,
        db_version=await get_db_version(context.database.engine),
    )
