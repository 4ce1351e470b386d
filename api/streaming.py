"""
API - Streaming Responses.

Wraps an async iterator of text fragments into a
StreamingResponse.

The first fragment is produced before the response is
built, so a failing first query still becomes a regular
JSON error. A failure after that point can no longer change
the status or headers and is appended to the body instead.
"""

import logging
from typing import AsyncIterator

from fastapi.responses import StreamingResponse

from .errors import streaming_error_suffix


logger = logging.getLogger(__name__)


async def stream_fragments(fragments: AsyncIterator[str], media_type: str) -> StreamingResponse:
    try:
        first = await fragments.__anext__()
    except StopAsyncIteration:
        first = ""

    async def body() -> AsyncIterator[str]:
        yield first
        try:
            async for fragment in fragments:
                yield fragment
        except Exception as e:
            logger.error(f"Error while streaming response: {e}")
            yield streaming_error_suffix(e)

    return StreamingResponse(body(), media_type=media_type)
