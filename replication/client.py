"""
Replication - Source Client.

============================================================
PURPOSE
============================================================
HTTP client a destination uses to talk to its source:

- GET /v1/info                                  (no auth)
- GET /v1/replication/source/get-table/{table}  (bearer)

============================================================
ERROR MAPPING
============================================================
- Transport failure        -> ReplicationSourceError
- 404                      -> UnknownTableError
- Other non-200 / non-list -> ReplicationSourceError

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from core.config import DEFAULT_VERSION
from core.exceptions import ReplicationSourceError, UnknownTableError


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 60.0


class ReplicationClient:
    """
    Async HTTP client for a replication source.

    Usage:
        client = ReplicationClient("https://source.example", api_key="...")
        info = await client.get_info()
        rows = await client.get_table("lab_sessions", updated_after, limit=10000)
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        version: str = DEFAULT_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Source deployment root URL
            api_key: Bearer token for the source
            version: Version sent in the User-Agent header
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._headers = {"User-Agent": f"labsync-replication/{version}"}
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ReplicationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    async def _get(self, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._get_client().get(path, **kwargs)
        except httpx.RequestError as e:
            raise ReplicationSourceError(
                f"Replication source unreachable: {e}", cause=e
            ) from e

    # --------------------------------------------------------
    # Endpoints
    # --------------------------------------------------------

    async def get_info(self) -> Dict[str, Any]:
        """Fetch the source's version and schema version."""
        response = await self._get("/v1/info")
        if response.status_code != 200:
            raise ReplicationSourceError(
                f"Replication source reported error when fetching info "
                f"({response.status_code}).",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise ReplicationSourceError(
                f"Error fetching info from source. Info is not an object: "
                f"{response.text[:200]!r}."
            )
        return body

    async def get_table(
        self,
        table: str,
        updated_after: datetime,
        limit: int,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page of rows updated at or after ``updated_after``.

        Raises:
            UnknownTableError: The source does not know the table
            ReplicationSourceError: Any other failure
        """
        params = {
            "limit": limit,
            "offset": offset,
            "updated_after": updated_after.isoformat(),
        }
        logger.info(f"Fetching {table} (L:{limit}; O:{offset})")

        response = await self._get(
            f"/v1/replication/source/get-table/{table}",
            params=params,
            headers=self._auth_headers(),
        )

        if response.status_code == 404:
            raise UnknownTableError(table)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code == 200 and isinstance(body, list):
            return body

        message = body.get("error", "") if isinstance(body, dict) else ""
        if response.status_code != 200 or message:
            raise ReplicationSourceError(
                f"Replication source reported error when fetching data "
                f"({response.status_code}). Message: '{message}'.",
                status_code=response.status_code,
            )
        raise ReplicationSourceError(
            f"Error fetching data from source. Table data is not an array: {body!r}."
        )
