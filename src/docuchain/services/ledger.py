"""HTTP client for the ledger gateway.

The gateway fronts the document-management contract. It answers whether an
address may read a document and whether a document is anchored on-chain,
and it submits issue and transfer transactions. Every failure, including
timeouts, surfaces as :class:`LedgerError`; this client does not retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from docuchain.core.settings import settings
from docuchain.services.errors import LedgerError

logger = logging.getLogger(__name__)

HTTP_SUCCESS = frozenset({200, 201})


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration for ledger gateway calls."""

    base_url: str
    timeout_seconds: float


def load_ledger_config() -> LedgerConfig:
    """Build configuration object from global settings."""
    return LedgerConfig(
        base_url=settings.ledger_base_url,
        timeout_seconds=float(settings.ledger_timeout_seconds),
    )


class LedgerClient:
    """Async wrapper around the ledger gateway endpoints."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_ledger_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def _request_json(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            raise LedgerError(f"Ledger request timed out: {path}") from exc
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger request failed: {exc}") from exc

        if response.status_code not in HTTP_SUCCESS:
            raise LedgerError(f"Ledger responded with {response.status_code} for {path}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerError("Ledger returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise LedgerError("Ledger returned an unexpected payload")
        return payload

    async def _get_json(self, path: str) -> dict[str, Any]:
        return await self._request_json("GET", path)

    async def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request_json("POST", path, body)

    async def can_access_document(self, document_id: str, address: str) -> bool:
        """Return True iff `address` is the document's issuer or current recipient."""
        payload = await self._get_json(
            f"/documents/{quote(document_id, safe='')}/access/{quote(address, safe='')}"
        )
        allowed = payload.get("allowed")
        if not isinstance(allowed, bool):
            raise LedgerError("Ledger access response missing 'allowed'")
        return allowed

    async def verify_document(self, document_id: str) -> bool:
        """Return True if the document is anchored and unrevoked on-chain."""
        payload = await self._get_json(f"/documents/{quote(document_id, safe='')}/verification")
        verified = payload.get("verified")
        if not isinstance(verified, bool):
            raise LedgerError("Ledger verification response missing 'verified'")
        return verified

    async def issue_document(self, issuer: str, recipient: str, ipfs_hash: str) -> str:
        """Anchor a document on-chain and return the id the contract assigned."""
        payload = await self._post_json(
            "/documents",
            {"issuer": issuer, "recipient": recipient, "ipfs_hash": ipfs_hash},
        )
        doc_id = payload.get("doc_id")
        if not isinstance(doc_id, str) or not doc_id:
            raise LedgerError("Ledger issue response missing 'doc_id'")
        return doc_id

    async def transfer_ownership(self, document_id: str, current_owner: str, new_owner: str) -> None:
        """Move a document to `new_owner`; the contract rejects a stale `current_owner`."""
        payload = await self._post_json(
            f"/documents/{quote(document_id, safe='')}/transfer",
            {"current_owner": current_owner, "new_owner": new_owner},
        )
        if payload.get("transferred") is not True:
            raise LedgerError(f"Ledger did not confirm transfer of {document_id}")

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _LedgerClientSingleton:
    """Singleton wrapper for LedgerClient."""

    _instance: LedgerClient | None = None

    @classmethod
    def get_instance(cls) -> LedgerClient:
        """Get or create the singleton LedgerClient instance."""
        if cls._instance is None:
            cls._instance = LedgerClient()
        return cls._instance


def get_ledger_client() -> LedgerClient:
    """Return a singleton ledger client instance."""
    return _LedgerClientSingleton.get_instance()
