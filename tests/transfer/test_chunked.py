"""
Tests for the chunked query loop.

============================================================
PURPOSE
============================================================
- Page sizes and offsets of each fetch
- Callback order (start once, chunks, end once)
- Limits and initial offsets
- Backpressure: no fetch while a chunk is being consumed

============================================================
"""

import asyncio

import pytest

from core.exceptions import TransferError
from transfer.chunked import chunked_query, iter_pages


# ============================================================
# FIXTURES
# ============================================================

class FakeTable:
    """In-memory rows served through (offset, limit) queries."""

    def __init__(self, count):
        self.rows = [{"id": i} for i in range(count)]
        self.calls = []

    async def query_page(self, offset, limit):
        self.calls.append((offset, limit))
        return self.rows[offset:offset + limit]


# ============================================================
# PAGING
# ============================================================

class TestChunkedQuery:

    @pytest.mark.asyncio
    async def test_uneven_last_page(self):
        table = FakeTable(25)
        chunks = []

        total = await chunked_query(
            table.query_page,
            lambda rows, offset: chunks.append((offset, len(rows))),
            page_size=10,
        )

        assert total == 25
        assert chunks == [(0, 10), (10, 10), (20, 5)]
        assert table.calls == [(0, 10), (10, 10), (20, 10)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rows,page_size,expected_chunks", [
        (1, 10, 1),
        (10, 10, 1),
        (11, 10, 2),
        (99, 7, 15),
    ])
    async def test_chunk_count(self, rows, page_size, expected_chunks):
        table = FakeTable(rows)
        chunks = []

        await chunked_query(table.query_page, lambda r, o: chunks.append(r), page_size)

        assert len(chunks) == expected_chunks
        assert sum(len(c) for c in chunks) == rows

    @pytest.mark.asyncio
    async def test_exact_multiple_fetches_one_empty_page(self):
        table = FakeTable(20)
        chunks = []

        await chunked_query(table.query_page, lambda r, o: chunks.append(o), page_size=10)

        assert chunks == [0, 10]
        assert table.calls[-1] == (20, 10)

    @pytest.mark.asyncio
    async def test_empty_result(self):
        table = FakeTable(0)
        events = []

        total = await chunked_query(
            table.query_page,
            lambda r, o: events.append("chunk"),
            page_size=10,
            on_start=lambda: events.append("start"),
            on_end=lambda: events.append("end"),
        )

        assert total == 0
        assert events == ["start", "end"]

    @pytest.mark.asyncio
    async def test_async_callbacks(self):
        table = FakeTable(3)
        events = []

        async def on_start():
            events.append("start")

        async def on_chunk(rows, offset):
            events.append(len(rows))

        async def on_end():
            events.append("end")

        await chunked_query(table.query_page, on_chunk, 2, on_start=on_start, on_end=on_end)

        assert events == ["start", 2, 1, "end"]


# ============================================================
# LIMITS
# ============================================================

class TestLimits:

    @pytest.mark.asyncio
    async def test_limit_shrinks_the_last_fetch(self):
        table = FakeTable(100)
        chunks = []

        total = await chunked_query(
            table.query_page, lambda r, o: chunks.append(len(r)), page_size=10, limit=25
        )

        assert total == 25
        assert table.calls == [(0, 10), (10, 10), (20, 5)]

    @pytest.mark.asyncio
    async def test_limit_smaller_than_page(self):
        table = FakeTable(100)

        total = await chunked_query(table.query_page, lambda r, o: None, page_size=10, limit=3)

        assert total == 3
        assert table.calls == [(0, 3)]

    @pytest.mark.asyncio
    async def test_initial_offset(self):
        table = FakeTable(30)
        seen = []

        await chunked_query(
            table.query_page,
            lambda rows, o: seen.extend(row["id"] for row in rows),
            page_size=10,
            limit=15,
            initial_offset=12,
        )

        assert seen == list(range(12, 27))

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        table = FakeTable(1)

        with pytest.raises(ValueError):
            await chunked_query(table.query_page, lambda r, o: None, page_size=0)
        with pytest.raises(ValueError):
            await chunked_query(table.query_page, lambda r, o: None, page_size=10, limit=-1)
        assert table.calls == []


# ============================================================
# ERRORS
# ============================================================

class TestErrors:

    @pytest.mark.asyncio
    async def test_non_list_result(self):
        async def query_page(offset, limit):
            return {"rows": []}

        with pytest.raises(TransferError):
            await chunked_query(query_page, lambda r, o: None, page_size=10)

    @pytest.mark.asyncio
    async def test_failed_first_query_never_starts(self):
        events = []

        async def query_page(offset, limit):
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            await chunked_query(
                query_page,
                lambda r, o: events.append("chunk"),
                page_size=10,
                on_start=lambda: events.append("start"),
                on_end=lambda: events.append("end"),
            )

        assert events == []


# ============================================================
# BACKPRESSURE
# ============================================================

@pytest.mark.asyncio
async def test_next_fetch_waits_for_slow_consumer():
    table = FakeTable(30)
    events = []

    async def query_page(offset, limit):
        events.append(("fetch", offset))
        return await table.query_page(offset, limit)

    async def on_chunk(rows, offset):
        events.append(("consume", offset))
        await asyncio.sleep(0.01)
        events.append(("consumed", offset))

    await chunked_query(query_page, on_chunk, page_size=10)

    assert events == [
        ("fetch", 0), ("consume", 0), ("consumed", 0),
        ("fetch", 10), ("consume", 10), ("consumed", 10),
        ("fetch", 20), ("consume", 20), ("consumed", 20),
        ("fetch", 30),
    ]


@pytest.mark.asyncio
async def test_iter_pages_yields_final_empty_page():
    table = FakeTable(10)

    pages = [page async for page in iter_pages(table.query_page, 10)]

    assert [len(p.rows) for p in pages] == [10, 0]
    assert pages[-1].is_last
