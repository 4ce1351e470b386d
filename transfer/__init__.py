"""
Transfer Package.

Offset-based paginated transfer: the chunk loop and the
JSON/CSV export built on top of it.
"""

from .chunked import Page, chunked_query, iter_pages
from .export import CONTENT_TYPES, EXPORT_FORMATS, json_default, paginated_export

__all__ = [
    "Page",
    "chunked_query",
    "iter_pages",
    "CONTENT_TYPES",
    "EXPORT_FORMATS",
    "json_default",
    "paginated_export",
]
