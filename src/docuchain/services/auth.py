"""Wallet challenge/response authentication.

Flow per identity::

    Unchallenged --issue_nonce--> Challenged --verify_signature--> Unchallenged (tokens issued)
                                      |
                                      +-- failed attempt x threshold --> Locked(until)

Failed attempts are committed before the corresponding error propagates so
lockout bookkeeping survives the failed request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from docuchain.core.security import is_wallet_address, normalize_address, recover_signer
from docuchain.core.settings import Settings, settings
from docuchain.db.time import utcnow
from docuchain.models import Identity, IdentityAuthState
from docuchain.repositories.identity_repo import IdentityRepository
from docuchain.services.auth_state import Locked, Unchallenged, phase_of
from docuchain.services.errors import (
    AccountLocked,
    IdentityInactive,
    InvalidAddress,
    InvalidTokenType,
    NoActiveNonce,
    NonceExpired,
    SignatureMismatch,
    SignatureRecoveryError,
    UnknownIdentity,
    WrongTokenKind,
)
from docuchain.services.nonce import NonceService
from docuchain.services.tokens import TokenKind, TokenPair, TokenService

logger = logging.getLogger(__name__)

GENERIC_AUTH_FAILURE = "Authentication failed"


def require_address(address: str | None) -> str:
    """Validate and normalize a wallet address, raising InvalidAddress."""
    if not is_wallet_address(address):
        raise InvalidAddress("Invalid Ethereum address")
    return normalize_address(address)  # type: ignore[arg-type]


class AuthService:
    """Issue challenges, verify wallet signatures and mint session tokens."""

    def __init__(
        self,
        db: Session,
        *,
        tokens: TokenService | None = None,
        nonces: NonceService | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.repo = IdentityRepository(db)
        self.config = config or settings
        self.tokens = tokens or TokenService(self.config)
        self.nonces = nonces or NonceService()
        self._clock = clock

    def _load_identity(self, address: str) -> Identity:
        identity = self.repo.find_by_address(address)
        if identity is None:
            raise UnknownIdentity("Identity not found")
        return identity

    def issue_nonce(self, address: str) -> str:
        """Issue a new challenge for a registered identity.

        Any previously issued, unconsumed nonce stops being valid.

        Raises:
            InvalidAddress: `address` is not a wallet address.
            UnknownIdentity: No identity is registered for `address`.
            IdentityInactive: The identity is suspended or blacklisted.
        """
        normalized = require_address(address)
        identity = self._load_identity(normalized)
        if not identity.is_active:
            raise IdentityInactive(identity.status)
        if identity.auth_state is None:
            self.repo.upsert_by_address(normalized, {})

        now = self._clock()
        self.repo.clear_stale_lock(normalized, now)
        nonce = self.nonces.issue(normalized, now_ms=int(now.timestamp() * 1000))
        self.repo.set_nonce(normalized, nonce, now)
        self.db.commit()

        logger.info("Nonce issued for wallet %s", normalized)
        return nonce

    def record_failed_attempt(self, address: str) -> IdentityAuthState | None:
        """Count a failed verification and lock the identity at the threshold."""
        normalized = normalize_address(address)
        now = self._clock()
        self.repo.clear_stale_lock(normalized, now)
        state = self.repo.increment_auth_attempts(
            normalized,
            now=now,
            threshold=self.config.lockout_threshold,
            lock_for=timedelta(minutes=self.config.lockout_minutes),
        )
        self.db.commit()

        if state is not None and state.locked_until is not None:
            logger.warning(
                "Wallet %s locked after %d failed attempts",
                normalized,
                state.auth_attempts,
            )
        return state

    def verify_signature(
        self,
        address: str,
        signature: str,
        challenge_message: str,
        source_address: str | None = None,
    ) -> TokenPair:
        """Verify a signed challenge and return a fresh token pair.

        Raises:
            InvalidAddress: `address` is not a wallet address.
            UnknownIdentity: No identity, or no outstanding nonce (NoActiveNonce).
            IdentityInactive: The identity is suspended or blacklisted.
            AccountLocked: Too many recent failures.
            NonceExpired: The outstanding nonce is older than the allowed age.
            SignatureRecoveryError: The signature is malformed.
            SignatureMismatch: The signature was produced by another key.
        """
        normalized = require_address(address)
        identity = self._load_identity(normalized)
        if not identity.is_active:
            raise IdentityInactive(identity.status)

        now = self._clock()
        if self.repo.clear_stale_lock(normalized, now):
            self.db.commit()

        phase = phase_of(self.repo.get_auth_state(normalized), now)
        if isinstance(phase, Locked):
            raise AccountLocked(phase.until)
        if isinstance(phase, Unchallenged):
            raise NoActiveNonce("No valid nonce found")

        nonce = phase.nonce
        if not self.nonces.is_fresh(
            nonce,
            self.config.nonce_max_age_minutes,
            now_ms=int(now.timestamp() * 1000),
        ):
            raise NonceExpired("Nonce has expired")

        parts = self.nonces.parse(nonce)
        if challenge_message != nonce or parts is None or parts.address != normalized:
            self.record_failed_attempt(normalized)
            logger.warning("Challenge mismatch for wallet %s", normalized)
            raise SignatureMismatch(GENERIC_AUTH_FAILURE)

        try:
            signer = recover_signer(challenge_message, signature)
        except ValueError as err:
            self.record_failed_attempt(normalized)
            logger.warning("Signature recovery failed for wallet %s: %s", normalized, err)
            raise SignatureRecoveryError(GENERIC_AUTH_FAILURE) from err

        if signer != normalized:
            self.record_failed_attempt(normalized)
            logger.warning("Signature from %s does not match wallet %s", signer, normalized)
            raise SignatureMismatch(GENERIC_AUTH_FAILURE)

        consumed = self.repo.consume_nonce(
            normalized,
            nonce,
            now=now,
            source_address=source_address,
            history_limit=self.config.login_history_limit,
        )
        if not consumed:
            self.db.rollback()
            raise NoActiveNonce("No valid nonce found")
        self.db.commit()

        logger.info("Signature verified for wallet %s", normalized)
        return self.tokens.issue_pair(normalized)

    def refresh_access_token(self, refresh_token: str) -> str:
        """Mint a new access token from a valid refresh token.

        Raises:
            TokenInvalid: Bad signature or unparsable token.
            TokenExpired: The refresh token has expired.
            InvalidTokenType: The token is not a refresh token.
        """
        try:
            claims = self.tokens.validate(refresh_token, TokenKind.REFRESH)
        except WrongTokenKind as err:
            raise InvalidTokenType("Invalid refresh token") from err
        logger.info("Access token refreshed for wallet %s", claims.address)
        return self.tokens.issue(claims.address, TokenKind.ACCESS)
