"""Domain exceptions raised by the authentication and verification services.

The API layer maps these onto HTTP responses in one place
(:mod:`docuchain.api.v1.errors`); services never raise ``HTTPException``.
"""

from __future__ import annotations

from datetime import datetime


class DocuChainError(RuntimeError):
    """Base exception for all registry failures."""


# --- Input validation ------------------------------------------------------------


class InvalidAddress(DocuChainError):
    """Raised when a wallet address is not a well-formed Ethereum address."""


class InvalidDocumentId(DocuChainError):
    """Raised when a document identifier is missing or empty."""


class InvalidEmail(DocuChainError):
    """Raised when an email address does not look deliverable."""


# --- Identity and challenge ------------------------------------------------------


class UnknownIdentity(DocuChainError):
    """Raised when no identity record exists for an address."""


class NoActiveNonce(UnknownIdentity):
    """Raised when the identity has no pending challenge to answer."""


class IdentityInactive(DocuChainError):
    """Raised when a suspended or blacklisted identity tries to authenticate."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Identity is {status}")
        self.status = status


class NonceExpired(DocuChainError):
    """Raised when the stored challenge is older than the allowed age."""


class SignatureRecoveryError(DocuChainError):
    """Raised when a signature is malformed and no signer can be recovered."""


class SignatureMismatch(DocuChainError):
    """Raised when the recovered signer does not match the claimed address."""


class AccountLocked(DocuChainError):
    """Raised while an identity is locked out after repeated failures."""

    def __init__(self, locked_until: datetime) -> None:
        super().__init__("Account temporarily locked")
        self.locked_until = locked_until


# --- Session tokens --------------------------------------------------------------


class MissingToken(DocuChainError):
    """Raised when a request carries no bearer credential."""


class TokenInvalid(DocuChainError):
    """Raised when a token cannot be parsed or its signature does not verify."""


class TokenExpired(DocuChainError):
    """Raised when a token is past its expiry claim."""


class WrongTokenKind(DocuChainError):
    """Raised when a token of one kind is presented where the other is required."""


class InvalidTokenType(WrongTokenKind):
    """Raised by the refresh flow when the presented token is not a refresh token."""


# --- One-time codes --------------------------------------------------------------


class OTCError(DocuChainError):
    """Base class for one-time code verification failures."""


class OTCNotIssued(OTCError):
    """Raised when no code is outstanding for the key."""


class OTCExpired(OTCError):
    """Raised when the outstanding code is older than its validity window."""


class OTCAttemptsExhausted(OTCError):
    """Raised when the code was purged after too many wrong attempts."""


class OTCMismatch(OTCError):
    """Raised when the candidate code is wrong but attempts remain."""


# --- Documents -------------------------------------------------------------------


class DocumentNotFound(DocuChainError):
    """Raised when a document id has no local record."""


class OwnerEmailMissing(DocuChainError):
    """Raised when a document owner has no email address on file."""


# --- External collaborators ------------------------------------------------------


class ExternalCollaboratorUnavailable(DocuChainError):
    """Raised when a remote dependency fails or times out.

    Kept distinct from authentication failures so clients can tell
    "not authorized" apart from "the system is degraded".
    """


class LedgerError(ExternalCollaboratorUnavailable):
    """Raised when the ledger gateway fails or times out."""


class AccessCheckFailed(ExternalCollaboratorUnavailable):
    """Raised when the ledger capability query cannot be answered."""


class ContentStoreError(ExternalCollaboratorUnavailable):
    """Raised when the content store fails or times out."""


class EmailDeliveryError(ExternalCollaboratorUnavailable):
    """Raised when the email transport rejects or fails to send a message."""


# --- Registration ----------------------------------------------------------------


class EmailInUse(DocuChainError):
    """Raised when an email address is already bound to another identity."""


class AddressInUse(DocuChainError):
    """Raised when signup targets a wallet that already has an identity."""


# --- Document registry -----------------------------------------------------------


class InvalidDocumentUpload(DocuChainError):
    """Raised when uploaded content is empty or over the size limit."""


class NotDocumentOwner(DocuChainError):
    """Raised when a transfer is requested by someone other than the current recipient."""
