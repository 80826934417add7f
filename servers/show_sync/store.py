"""
Client for the remote record store.

The store exposes generic document operations over HTTP; this pipeline
uses three of them:
- query(collection, filter) -> {"data": [...]}
- update(collection, filter, patch)
- insert(collection, document)

Every call carries the bearer credential and the X-Project-ID header.
"""

from typing import Any, Optional

import httpx
import structlog

from .config.settings import StoreSettings
from .errors import StoreError

logger = structlog.get_logger()


class RecordStore:
    """Async HTTP client for the record store's data API."""

    def __init__(
        self,
        settings: StoreSettings,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """Initialize the store client.

        Args:
            settings: Base URL and credentials
            client: Optional shared client (caller owns its lifecycle)
            timeout: Transport timeout for a created client
        """
        self.settings = settings
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "RecordStore":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
            "X-Project-ID": self.settings.project_id,
        }

    async def query(self, collection: str, filter: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the documents of `collection` matching `filter`."""
        body = await self._post("query", {"collection": collection, "query": filter})
        data = body.get("data") or []
        if not isinstance(data, list):
            raise StoreError("query", "response 'data' is not a list")
        return data

    async def update(
        self, collection: str, filter: dict[str, Any], patch: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply `patch` to the documents matching `filter`."""
        return await self._post(
            "update", {"collection": collection, "filter": filter, "update": patch}
        )

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document into `collection`."""
        return await self._post("insert", {"collection": collection, "document": document})

    async def _post(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("RecordStore must be entered before use")

        url = f"{self.settings.base_url}/data/{operation}"
        try:
            response = await self._client.post(url, json=payload, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                operation,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(operation, f"Request failed: {e}") from e

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise StoreError(operation, "response is not valid JSON") from e

        logger.debug("store_call", operation=operation, collection=payload["collection"])
        return body if isinstance(body, dict) else {"data": body}
