"""
Remote document store transport.

The transport is the only code that talks to the remote mirror. It
exposes connect/disconnect plus a small document CRUD surface keyed by
collection name and equality filters (owner id, document id).

DocumentTransport is the contract; HttpDocumentTransport speaks to a
JSON document API over HTTP:

    GET  {base}/{db}/ping
    POST {base}/{db}/collections/{collection}/documents   -> {"_id": ...}
    POST {base}/{db}/collections/{collection}/find        -> {"documents": [...]}
    POST {base}/{db}/collections/{collection}/update      -> {"matched": n}
    POST {base}/{db}/collections/{collection}/delete      -> {"deleted": n}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ..core.exceptions import ConnectionFailed

logger = logging.getLogger(__name__)

USER_AGENT = "Keyward/0.1"


class DocumentTransport(ABC):
    """Abstract remote document store transport."""

    @abstractmethod
    async def connect(self, db_name: str) -> None:
        """Open a connection to the named database.

        Raises:
            Exception: Any transport error; the ConnectionManager wraps it.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection (no-op when not connected)."""

    @abstractmethod
    async def insert(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document and return its id."""

    @abstractmethod
    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Documents whose fields equal every filter value."""

    @abstractmethod
    async def update(
        self, collection: str, filters: Dict[str, Any], fields: Dict[str, Any]
    ) -> int:
        """Set fields on matching documents; return the matched count."""

    @abstractmethod
    async def delete(self, collection: str, filters: Dict[str, Any]) -> int:
        """Delete matching documents; return the deleted count."""


class HttpDocumentTransport(DocumentTransport):
    """Document transport backed by an HTTP JSON API (httpx.AsyncClient).

    Args:
        base_uri: API base URL, without the database segment.
        token: Optional bearer token.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
    """

    def __init__(
        self,
        base_uri: str,
        token: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_uri = base_uri.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._http_transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def connect(self, db_name: str) -> None:
        if not self.base_uri:
            raise ConnectionFailed("Remote store URI is not configured")
        client = httpx.AsyncClient(
            base_url=f"{self.base_uri}/{db_name}",
            headers=self._build_headers(),
            timeout=self.timeout,
            transport=self._http_transport,
        )
        try:
            resp = await client.get("/ping")
            resp.raise_for_status()
        except BaseException:
            await client.aclose()
            raise
        self._client = client
        logger.info("Remote document store connected: %s/%s", self.base_uri, db_name)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, collection: str, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self._client is None:
            raise ConnectionFailed("Remote store is not connected")
        try:
            resp = await self._client.post(f"/collections/{collection}/{action}", json=payload)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise ConnectionFailed(f"Remote store request failed: {exc}", cause=exc) from exc

    async def insert(self, collection: str, document: Dict[str, Any]) -> str:
        data = await self._post(collection, "documents", document)
        return str(data["_id"])

    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = await self._post(collection, "find", {"filter": filters})
        return list(data.get("documents", []))

    async def update(
        self, collection: str, filters: Dict[str, Any], fields: Dict[str, Any]
    ) -> int:
        data = await self._post(collection, "update", {"filter": filters, "set": fields})
        return int(data.get("matched", 0))

    async def delete(self, collection: str, filters: Dict[str, Any]) -> int:
        data = await self._post(collection, "delete", {"filter": filters})
        return int(data.get("deleted", 0))
