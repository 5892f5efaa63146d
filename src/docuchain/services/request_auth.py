"""Bearer-token gate for authenticated requests."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from docuchain.repositories.identity_repo import IdentityRepository
from docuchain.services.errors import (
    IdentityInactive,
    MissingToken,
    TokenInvalid,
    UnknownIdentity,
)
from docuchain.services.tokens import TokenKind, TokenService


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """What downstream handlers learn about the caller: the address only."""

    address: str


class RequestAuthenticator:
    """Resolve an ``Authorization`` header to an active identity."""

    def __init__(self, db: Session, tokens: TokenService | None = None) -> None:
        self.repo = IdentityRepository(db)
        self.tokens = tokens or TokenService()

    @staticmethod
    def extract_bearer(authorization: str | None) -> str:
        """Return the credential from a ``Bearer <token>`` header value."""
        if authorization is None or not authorization.strip():
            raise MissingToken("No token provided")
        scheme, _, credential = authorization.strip().partition(" ")
        if scheme.lower() != "bearer":
            raise TokenInvalid("Could not validate credentials")
        credential = credential.strip()
        if not credential:
            raise MissingToken("No token provided")
        return credential

    def authenticate(self, authorization: str | None) -> AuthenticatedIdentity:
        """Validate the access token and confirm the identity still exists.

        Raises:
            MissingToken: No header or an empty bearer credential.
            TokenInvalid: Not a bearer header, bad signature or malformed token.
            TokenExpired: The access token has expired.
            WrongTokenKind: A refresh token was presented.
            UnknownIdentity: The embedded address no longer resolves.
            IdentityInactive: The identity is suspended or blacklisted.
        """
        token = self.extract_bearer(authorization)
        claims = self.tokens.validate(token, TokenKind.ACCESS)

        identity = self.repo.find_by_address(claims.address)
        if identity is None:
            raise UnknownIdentity("User not found")
        if not identity.is_active:
            raise IdentityInactive(identity.status)
        return AuthenticatedIdentity(address=identity.address)
