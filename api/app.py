"""
API - Application Factory.

Builds the FastAPI application around an explicit
AppContext. All routes are mounted under /v1.
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from .errors import register_error_handlers
from .routes import public, replication

if TYPE_CHECKING:
    from runtime.context import AppContext


API_PREFIX = "/v1"


def create_app(context: "AppContext", manage_lifecycle: bool = True) -> FastAPI:
    """
    Create the HTTP application.

    Args:
        context: Wired application context
        manage_lifecycle: Run context startup/shutdown in the
            app lifespan (disable when the caller manages it)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await context.startup()
        try:
            yield
        finally:
            await context.shutdown()

    app = FastAPI(
        title="labsync",
        description="Instance coordination, replication and alerting API.",
        version=context.config.version,
        lifespan=lifespan if manage_lifecycle else None,
    )
    app.state.context = context

    register_error_handlers(app)

    app.include_router(public.router, prefix=API_PREFIX)
    app.include_router(replication.router, prefix=API_PREFIX)

    return app
