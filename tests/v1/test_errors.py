# tests/v1/test_errors.py
"""Tests for the domain error to HTTP status mapping."""

from datetime import UTC, datetime

import pytest
from fastapi import status

from docuchain.api.v1.errors import (
    GENERIC_AUTH_DETAIL,
    LOCKED_DETAIL,
    UNAVAILABLE_DETAIL,
    to_http_exception,
)
from docuchain.services.errors import (
    AccessCheckFailed,
    AccountLocked,
    AddressInUse,
    ContentStoreError,
    DocuChainError,
    DocumentNotFound,
    EmailDeliveryError,
    EmailInUse,
    IdentityInactive,
    InvalidAddress,
    InvalidDocumentId,
    InvalidDocumentUpload,
    InvalidEmail,
    InvalidTokenType,
    LedgerError,
    MissingToken,
    NoActiveNonce,
    NonceExpired,
    NotDocumentOwner,
    OTCAttemptsExhausted,
    OTCExpired,
    OTCMismatch,
    OTCNotIssued,
    OwnerEmailMissing,
    SignatureMismatch,
    SignatureRecoveryError,
    TokenExpired,
    TokenInvalid,
    UnknownIdentity,
)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (InvalidAddress("bad"), status.HTTP_400_BAD_REQUEST),
        (InvalidEmail("bad"), status.HTTP_400_BAD_REQUEST),
        (InvalidDocumentId("bad"), status.HTTP_400_BAD_REQUEST),
        (UnknownIdentity("who"), status.HTTP_401_UNAUTHORIZED),
        (NoActiveNonce("none"), status.HTTP_401_UNAUTHORIZED),
        (NonceExpired("old"), status.HTTP_401_UNAUTHORIZED),
        (IdentityInactive("suspended"), status.HTTP_403_FORBIDDEN),
        (OTCMismatch("wrong"), status.HTTP_401_UNAUTHORIZED),
        (OTCNotIssued("none"), status.HTTP_400_BAD_REQUEST),
        (OTCExpired("old"), status.HTTP_400_BAD_REQUEST),
        (OTCAttemptsExhausted("spent"), status.HTTP_400_BAD_REQUEST),
        (DocumentNotFound("missing"), status.HTTP_404_NOT_FOUND),
        (OwnerEmailMissing("missing"), status.HTTP_404_NOT_FOUND),
        (EmailInUse("taken"), status.HTTP_409_CONFLICT),
        (AddressInUse("registered"), status.HTTP_409_CONFLICT),
        (InvalidDocumentUpload("empty"), status.HTTP_400_BAD_REQUEST),
        (NotDocumentOwner("not yours"), status.HTTP_403_FORBIDDEN),
    ],
)
def test_status_mapping(error, expected):
    assert to_http_exception(error).status_code == expected


@pytest.mark.parametrize("error", [SignatureMismatch("x"), SignatureRecoveryError("y")])
def test_signature_failures_are_generic(error):
    exc = to_http_exception(error)
    assert exc.status_code == status.HTTP_401_UNAUTHORIZED
    assert exc.detail == GENERIC_AUTH_DETAIL


@pytest.mark.parametrize(
    "error",
    [MissingToken("m"), TokenInvalid("i"), TokenExpired("e"), InvalidTokenType("t")],
)
def test_token_failures_challenge_for_bearer(error):
    exc = to_http_exception(error)
    assert exc.status_code == status.HTTP_401_UNAUTHORIZED
    assert exc.headers == {"WWW-Authenticate": "Bearer"}


def test_locked_account():
    exc = to_http_exception(AccountLocked(datetime(2030, 1, 1, tzinfo=UTC)))
    assert exc.status_code == status.HTTP_423_LOCKED
    assert exc.detail == LOCKED_DETAIL


@pytest.mark.parametrize(
    "error",
    [
        LedgerError("rpc"),
        AccessCheckFailed("rpc"),
        ContentStoreError("ipfs"),
        EmailDeliveryError("smtp"),
    ],
)
def test_collaborator_failures_hide_details(error):
    exc = to_http_exception(error)
    assert exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert exc.detail == UNAVAILABLE_DETAIL


def test_unmapped_error_is_500():
    assert to_http_exception(DocuChainError("?")).status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
