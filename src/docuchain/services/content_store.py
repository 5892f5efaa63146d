"""Client for the IPFS content store (Kubo RPC API)."""

from __future__ import annotations

import asyncio
import logging

import httpx

from docuchain.core.settings import settings
from docuchain.services.errors import ContentStoreError

logger = logging.getLogger(__name__)

HTTP_OK = 200


class ContentStoreClient:
    """Store raw bytes and retrieve them by content identifier."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.content_store_url
        self.timeout_seconds = float(
            timeout_seconds
            if timeout_seconds is not None
            else settings.content_store_timeout_seconds
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def fetch(self, cid: str) -> bytes:
        """Return the bytes stored under `cid`.

        Raises:
            ContentStoreError: Empty cid, transport failure, timeout or non-200 reply.
        """
        if not cid:
            raise ContentStoreError("Content identifier is required")

        client = await self._ensure_client()
        try:
            # Kubo's RPC API only accepts POST.
            response = await client.post("/api/v0/cat", params={"arg": cid})
        except httpx.TimeoutException as exc:
            raise ContentStoreError(f"Content store timed out fetching {cid}") from exc
        except httpx.HTTPError as exc:
            raise ContentStoreError(f"Content store request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise ContentStoreError(
                f"Content store responded with {response.status_code} for {cid}"
            )
        logger.debug("Fetched %d bytes for %s", len(response.content), cid)
        return response.content

    async def add(self, data: bytes, file_name: str = "blob") -> str:
        """Store `data` and return its content identifier.

        Raises:
            ContentStoreError: Empty payload, transport failure, timeout or a
                reply without a ``Hash``.
        """
        if not data:
            raise ContentStoreError("Refusing to store an empty payload")

        client = await self._ensure_client()
        try:
            response = await client.post(
                "/api/v0/add",
                params={"pin": "true"},
                files={"file": (file_name, data)},
            )
        except httpx.TimeoutException as exc:
            raise ContentStoreError(f"Content store timed out storing {file_name}") from exc
        except httpx.HTTPError as exc:
            raise ContentStoreError(f"Content store request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise ContentStoreError(f"Content store responded with {response.status_code} on add")
        try:
            cid = response.json().get("Hash")
        except (ValueError, AttributeError) as exc:
            raise ContentStoreError("Content store returned an unexpected add reply") from exc
        if not isinstance(cid, str) or not cid:
            raise ContentStoreError("Content store add reply missing 'Hash'")

        logger.debug("Stored %d bytes as %s", len(data), cid)
        return cid

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _ContentStoreSingleton:
    _instance: ContentStoreClient | None = None

    @classmethod
    def get_instance(cls) -> ContentStoreClient:
        if cls._instance is None:
            cls._instance = ContentStoreClient()
        return cls._instance


def get_content_store() -> ContentStoreClient:
    """Return a singleton content store client."""
    return _ContentStoreSingleton.get_instance()
