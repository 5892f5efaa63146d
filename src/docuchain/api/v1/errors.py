"""Translate domain exceptions into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from docuchain.services.errors import (
    AccountLocked,
    AddressInUse,
    DocuChainError,
    DocumentNotFound,
    EmailInUse,
    ExternalCollaboratorUnavailable,
    IdentityInactive,
    InvalidAddress,
    InvalidDocumentId,
    InvalidDocumentUpload,
    InvalidEmail,
    MissingToken,
    NonceExpired,
    NotDocumentOwner,
    OTCError,
    OTCMismatch,
    OwnerEmailMissing,
    SignatureMismatch,
    SignatureRecoveryError,
    TokenExpired,
    TokenInvalid,
    UnknownIdentity,
    WrongTokenKind,
)

logger = logging.getLogger(__name__)

GENERIC_AUTH_DETAIL = "Authentication failed"
LOCKED_DETAIL = "Account temporarily locked due to too many failed attempts"
UNAVAILABLE_DETAIL = "A dependent service is unavailable, try again later"

_BEARER = {"WWW-Authenticate": "Bearer"}


def to_http_exception(err: DocuChainError) -> HTTPException:
    """Map a domain error onto the matching HTTP status and detail."""
    if isinstance(err, (InvalidAddress, InvalidEmail, InvalidDocumentId, InvalidDocumentUpload)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))

    if isinstance(err, AccountLocked):
        return HTTPException(status_code=status.HTTP_423_LOCKED, detail=LOCKED_DETAIL)

    if isinstance(err, (SignatureMismatch, SignatureRecoveryError)):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=GENERIC_AUTH_DETAIL)

    if isinstance(err, (MissingToken, TokenInvalid, TokenExpired, WrongTokenKind)):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
            headers=_BEARER,
        )

    if isinstance(err, (UnknownIdentity, NonceExpired)):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(err))

    if isinstance(err, IdentityInactive):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    if isinstance(err, OTCMismatch):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(err))

    if isinstance(err, OTCError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))

    if isinstance(err, (DocumentNotFound, OwnerEmailMissing)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err))

    if isinstance(err, NotDocumentOwner):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(err))

    if isinstance(err, (EmailInUse, AddressInUse)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err))

    if isinstance(err, ExternalCollaboratorUnavailable):
        logger.warning("Collaborator failure: %s", err)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=UNAVAILABLE_DETAIL,
        )

    logger.error("Unmapped domain error %s: %s", type(err).__name__, err)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")
