"""
API - Bearer Authentication.

Protected routes require "Authorization: Bearer <key>"
matching DEFAULT_API_KEY. Without a configured key every
protected request is rejected.
"""

import hmac
import re

from fastapi import Request

from .errors import AppError


BEARER_PATTERN = re.compile(r"^Bearer (.*)$")


def _no_auth(message: str) -> AppError:
    return AppError(message, status=401)


async def require_api_key(request: Request) -> None:
    """FastAPI dependency guarding protected routes."""
    header = request.headers.get("authorization", "")
    match = BEARER_PATTERN.match(header)
    token = match.group(1) if match else None
    if not token:
        raise _no_auth("Authentication via API Key required")

    api_key = request.app.state.context.config.api.api_key
    if not api_key:
        raise _no_auth(
            "The server is currently not set up to use an API Key. "
            "Please set the respective environment variable."
        )

    if not hmac.compare_digest(token.encode(), api_key.encode()):
        raise _no_auth("The provided API Key is invalid.")
