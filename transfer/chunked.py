"""
Transfer - Chunked Query Loop.

============================================================
RESPONSIBILITY
============================================================
Turns any "fetch N rows starting at offset O" function into
a bounded-memory stream of pages.

- Offset based, no server-side cursor
- One page in memory at a time
- A page is only fetched after the previous consumer
  callback has completed (natural backpressure)

============================================================
TERMINATION
============================================================
The loop stops when a fetch returns fewer rows than were
requested, returns nothing, or the overall limit is reached.

============================================================
"""

import inspect
import logging
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
)

from core.exceptions import TransferError


logger = logging.getLogger(__name__)


QueryPage = Callable[[int, int], Awaitable[Sequence[Any]]]
"""Coroutine function taking (offset, limit) and returning rows."""


@dataclass
class Page:
    """One fetched chunk of rows."""

    offset: int
    rows: List[Any]
    requested: int

    @property
    def is_last(self) -> bool:
        return len(self.rows) == 0 or len(self.rows) < self.requested


async def _call(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Invoke a plain or async callback."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def iter_pages(
    query_page: QueryPage,
    page_size: int,
    limit: Optional[int] = None,
    initial_offset: int = 0,
) -> AsyncIterator[Page]:
    """
    Yield every fetched page, including a final short or empty one.

    Args:
        query_page: Fetches rows for (offset, limit)
        page_size: Rows per fetch
        limit: Overall cap on rows (None for no cap)
        initial_offset: Offset of the first fetch

    Raises:
        TransferError: The query returned something other than a list
        ValueError: page_size < 1, negative limit or offset
    """
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")
    if limit is not None and limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    if initial_offset < 0:
        raise ValueError(f"initial_offset must not be negative, got {initial_offset}")

    offset = initial_offset
    absolute_limit = None if limit is None else initial_offset + limit

    if limit is not None and limit < page_size:
        page_size = limit

    while True:
        # Shrink the last page so the overall limit is never overshot
        if absolute_limit is not None and offset + page_size > absolute_limit:
            page_size = absolute_limit - offset

        rows = await query_page(offset, page_size)
        if not isinstance(rows, (list, tuple)):
            raise TransferError(
                "Query results are always expected to be a list",
                context={"offset": offset, "type": type(rows).__name__},
            )

        page = Page(offset=offset, rows=list(rows), requested=page_size)
        yield page

        offset += page_size

        if page.is_last:
            break
        if absolute_limit is not None and offset >= absolute_limit:
            break


async def chunked_query(
    query_page: QueryPage,
    on_chunk: Callable[[List[Any], int], Any],
    page_size: int,
    on_start: Optional[Callable[[], Any]] = None,
    on_end: Optional[Callable[[], Any]] = None,
    limit: Optional[int] = None,
    initial_offset: int = 0,
) -> int:
    """
    Run the chunked query loop with start/chunk/end callbacks.

    on_start runs once, after the first fetch succeeded, so a
    failing first query can still be reported as an error.
    on_chunk only sees non-empty pages. on_end runs once after
    the last page. Callbacks may be plain or async.

    Returns:
        Total number of rows passed to on_chunk
    """
    total = 0
    started = False

    async for page in iter_pages(query_page, page_size, limit, initial_offset):
        if not started:
            await _call(on_start)
            started = True

        if page.rows:
            await _call(on_chunk, page.rows, page.offset)
            total += len(page.rows)

    await _call(on_end)

    logger.debug(f"Chunked query finished: {total} rows from offset {initial_offset}")
    return total
