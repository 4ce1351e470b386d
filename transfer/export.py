"""
Transfer - Paginated Export.

Streams a paginated query as one JSON array or one CSV
document, fragment by fragment. Rows are mappings.

JSON: "[" + chunks joined by "," + "]" ("[]" when empty)
CSV:  header with the first chunk, "\\n" between chunks
"""

import csv
import io
import json
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

from .chunked import QueryPage, iter_pages


EXPORT_FORMATS = ("json", "csv")

CONTENT_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


def json_default(value: Any) -> Any:
    """JSON encoder for values the json module does not handle."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    return json.dumps(value, default=json_default, separators=(",", ":"))


def _csv_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return dumps(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _csv_fields(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    fields: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            fields.setdefault(key, None)
    return list(fields)


def _csv_chunk(
    rows: Sequence[Mapping[str, Any]],
    fields: List[str],
    header: bool,
) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=fields, extrasaction="ignore", lineterminator="\n"
    )
    if header:
        writer.writeheader()
    for row in rows:
        writer.writerow({key: _csv_value(row.get(key)) for key in fields})
    return buffer.getvalue().rstrip("\n")


async def paginated_export(
    query_page: QueryPage,
    fmt: str,
    page_size: int,
    limit: Optional[int] = None,
    initial_offset: int = 0,
) -> AsyncIterator[str]:
    """
    Export a paginated query as text fragments.

    Nothing is yielded before the first query has returned,
    so the caller can still answer with an error status when
    that query fails.

    Args:
        query_page: Fetches rows for (offset, limit)
        fmt: "json" or "csv"
        page_size: Rows per fetch
        limit: Overall cap on rows
        initial_offset: Offset of the first fetch

    Raises:
        ValueError: Unknown format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown format: {fmt}")

    first_chunk = True
    csv_fields: List[str] = []

    if fmt == "json":
        opened = False
        async for page in iter_pages(query_page, page_size, limit, initial_offset):
            if not opened:
                yield "["
                opened = True
            if not page.rows:
                continue

            encoded = dumps(page.rows)
            if not first_chunk:
                yield ","
            # Strip the array brackets; the envelope is written once
            yield encoded[1:-1]
            first_chunk = False

        yield "]"
        return

    async for page in iter_pages(query_page, page_size, limit, initial_offset):
        if not page.rows:
            continue

        if first_chunk:
            csv_fields = _csv_fields(page.rows)
            yield _csv_chunk(page.rows, csv_fields, header=True)
            first_chunk = False
        else:
            yield "\n"
            yield _csv_chunk(page.rows, csv_fields, header=False)
