"""Challenge nonces for wallet sign-in.

A nonce is ``"{address}:{issued_at_ms}:{entropy_hex}"``. Embedding the issue
time lets freshness be checked without a separate expiry index.
"""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NONCE_ENTROPY_BYTES = 16
_NONCE_FIELDS = 3


@dataclass(frozen=True)
class NonceParts:
    """Decoded fields of a challenge nonce."""

    address: str
    issued_at_ms: int
    entropy: str


def _now_ms() -> int:
    return int(time.time() * 1000)


class NonceService:
    """Stateless issuer and validator of challenge nonces."""

    @staticmethod
    def issue(address: str, *, now_ms: int | None = None) -> str:
        """Build a fresh nonce bound to `address`."""
        issued_at = _now_ms() if now_ms is None else now_ms
        entropy = secrets.token_hex(NONCE_ENTROPY_BYTES)
        logger.debug("Nonce generated for wallet %s", address)
        return f"{address}:{issued_at}:{entropy}"

    @staticmethod
    def parse(nonce: str | None) -> NonceParts | None:
        """Split a nonce into its fields; return None when malformed."""
        if not nonce or not isinstance(nonce, str):
            return None
        parts = nonce.split(":")
        if len(parts) != _NONCE_FIELDS:
            return None
        address, issued_at, entropy = parts
        if not issued_at.isdigit():
            return None
        return NonceParts(address=address, issued_at_ms=int(issued_at), entropy=entropy)

    @classmethod
    def is_fresh(
        cls,
        nonce: str | None,
        max_age_minutes: float,
        *,
        now_ms: int | None = None,
    ) -> bool:
        """Return True if the nonce is well formed and no older than `max_age_minutes`."""
        parts = cls.parse(nonce)
        if parts is None:
            logger.warning("Rejected malformed nonce")
            return False
        now = _now_ms() if now_ms is None else now_ms
        age_ms = now - parts.issued_at_ms
        return age_ms <= max_age_minutes * 60 * 1000


def get_nonce_service() -> NonceService:
    """Return a nonce service instance."""
    return NonceService()
