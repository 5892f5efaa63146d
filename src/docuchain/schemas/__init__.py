# src/docuchain/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import (
    AccessTokenResponse,
    CodeSentResponse,
    EmailChangeRequest,
    EmailCodeRequest,
    EmailCodeVerifyRequest,
    EmailVerifiedResponse,
    IdentityResponse,
    NonceRequest,
    NonceResponse,
    RefreshTokenRequest,
    SignupRequest,
    SignupResponse,
    TokenPairResponse,
    VerifySignatureRequest,
)
from .document import (
    DocumentCodeVerifyRequest,
    DocumentContentResponse,
    DocumentIssueRequest,
    DocumentRecord,
    DocumentTransferRequest,
    DocumentVerificationResponse,
    LedgerStatusResponse,
    OwnerDetails,
)

__all__ = [
    "AccessTokenResponse", "CodeSentResponse",
    "EmailChangeRequest", "EmailCodeRequest", "EmailCodeVerifyRequest", "EmailVerifiedResponse",
    "IdentityResponse", "NonceRequest", "NonceResponse",
    "RefreshTokenRequest", "SignupRequest", "SignupResponse",
    "TokenPairResponse", "VerifySignatureRequest",
    "DocumentCodeVerifyRequest", "DocumentContentResponse", "DocumentIssueRequest",
    "DocumentRecord", "DocumentTransferRequest", "DocumentVerificationResponse",
    "LedgerStatusResponse", "OwnerDetails",
]
