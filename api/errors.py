"""
API - Error Handling.

============================================================
HTTP MAPPING
============================================================
- AppError                 -> its own status
- Request validation error -> 400
- UnknownTableError        -> 404
- Other LabSyncException   -> 500
- Anything else            -> 500

Every error body is {"error": "<message>"}. Errors raised
after a streamed body has started are appended to the
stream as plain text instead (see api/streaming.py).

============================================================
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import LabSyncException, UnknownTableError


logger = logging.getLogger(__name__)


DEFAULT_ERROR_MESSAGE = "Server Error. Please check the server log."


class AppError(LabSyncException):
    """Error with an explicit HTTP status."""

    def __init__(self, message: str, status: int = 500, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status


def status_for(exc: Exception) -> int:
    if isinstance(exc, AppError):
        return exc.status
    if isinstance(exc, UnknownTableError):
        return 404
    return 500


def message_for(exc: Exception) -> str:
    return str(exc) or DEFAULT_ERROR_MESSAGE


def streaming_error_suffix(exc: Exception) -> str:
    """Text appended to a response whose headers were already sent."""
    return (
        f"ERROR: {message_for(exc)}. This error occurred after data and headers "
        f"have been sent. Please check the server logs."
    )


def error_response(status: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message}, headers=headers)


# ============================================================
# HANDLERS
# ============================================================

async def app_exception_handler(request: Request, exc: LabSyncException) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {status}: {exc}")
    return error_response(status, message_for(exc))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("query", "path"))
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(problems) or "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
    return error_response(400, message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed: {exc}")
    return error_response(500, message_for(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LabSyncException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
