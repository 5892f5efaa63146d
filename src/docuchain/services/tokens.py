"""Signed session tokens.

Access and refresh tokens are JWTs signed with independent secrets so that a
leak of one secret cannot forge tokens of the other kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from jose import ExpiredSignatureError, JWTError, jwt

from docuchain.core.settings import Settings, settings
from docuchain.services.errors import TokenExpired, TokenInvalid, WrongTokenKind


class TokenKind(str, Enum):
    """The two bearer credential kinds."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    address: str
    kind: TokenKind
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh tokens issued together after a login."""

    access_token: str
    refresh_token: str


class TokenService:
    """Mint and validate access/refresh tokens."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    def secret_for(self, kind: TokenKind) -> str:
        if kind is TokenKind.ACCESS:
            return self.config.access_token_secret
        return self.config.refresh_token_secret

    def ttl_for(self, kind: TokenKind) -> timedelta:
        if kind is TokenKind.ACCESS:
            return timedelta(minutes=self.config.access_token_expire_minutes)
        return timedelta(days=self.config.refresh_token_expire_days)

    def issue(self, address: str, kind: TokenKind, *, now: datetime | None = None) -> str:
        """Create a signed token of `kind` for `address`."""
        issued_at = now or datetime.now(UTC)
        to_encode: dict[str, object] = {
            "sub": address,
            "type": kind.value,
            "iat": int(issued_at.timestamp()),
            "exp": issued_at + self.ttl_for(kind),
        }
        encoded_jwt: str = jwt.encode(
            to_encode,
            self.secret_for(kind),
            algorithm=self.config.jwt_algorithm,
        )
        return encoded_jwt

    def issue_pair(self, address: str) -> TokenPair:
        """Create a fresh access/refresh pair for `address`."""
        now = datetime.now(UTC)
        return TokenPair(
            access_token=self.issue(address, TokenKind.ACCESS, now=now),
            refresh_token=self.issue(address, TokenKind.REFRESH, now=now),
        )

    def _other_kind(self, kind: TokenKind) -> TokenKind:
        return TokenKind.REFRESH if kind is TokenKind.ACCESS else TokenKind.ACCESS

    def _signed_as(self, token: str, kind: TokenKind) -> bool:
        """Return True if `token` carries a valid signature and type claim for `kind`."""
        try:
            payload = jwt.decode(
                token,
                self.secret_for(kind),
                algorithms=[self.config.jwt_algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return False
        return payload.get("type") == kind.value

    def validate(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify `token` as a token of `kind`.

        The signature is checked with the secret for `kind` first. A token that
        fails that check is reported as :class:`WrongTokenKind` only when it is
        a genuine token of the other kind; anything else is :class:`TokenInvalid`.

        Raises:
            TokenInvalid: Unparsable token, bad signature, unknown kind or missing subject.
            WrongTokenKind: The token is a valid token of the other kind.
            TokenExpired: The token is past its ``exp`` claim.
        """
        other = self._other_kind(kind)
        try:
            payload = jwt.decode(
                token,
                self.secret_for(kind),
                algorithms=[self.config.jwt_algorithm],
            )
        except ExpiredSignatureError as err:
            raise TokenExpired("Token expired") from err
        except JWTError as err:
            if self._signed_as(token, other):
                raise WrongTokenKind(f"Expected {kind.value} token, got {other.value}") from err
            raise TokenInvalid("Could not validate credentials") from err

        presented = payload.get("type")
        if presented == other.value:
            # Both kinds share a secret.
            raise WrongTokenKind(f"Expected {kind.value} token, got {other.value}")
        if presented != kind.value:
            raise TokenInvalid("Could not validate credentials")

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise TokenInvalid("Could not validate credentials")

        return TokenClaims(
            address=subject,
            kind=kind,
            expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
        )


def get_token_service() -> TokenService:
    """Return a token service bound to the global settings."""
    return TokenService()
