# src/docuchain/services/__init__.py
"""Business logic services for the DocuChain registry."""

from .auth import AuthService
from .documents import DocumentAccessAuthorizer
from .nonce import NonceService
from .otc import MemoryOTCStore, OTCOutcome, OTCStore, OTCSweeper, RedisOTCStore
from .registration import RegistrationService
from .request_auth import AuthenticatedIdentity, RequestAuthenticator
from .tokens import TokenKind, TokenPair, TokenService
from .verification import DocumentVerificationFlow, EmailVerificationFlow

__all__ = [
    "AuthService",
    "AuthenticatedIdentity",
    "DocumentAccessAuthorizer",
    "DocumentVerificationFlow",
    "EmailVerificationFlow",
    "MemoryOTCStore",
    "NonceService",
    "OTCOutcome",
    "OTCStore",
    "OTCSweeper",
    "RedisOTCStore",
    "RegistrationService",
    "RequestAuthenticator",
    "TokenKind",
    "TokenPair",
    "TokenService",
]
