"""One-time-code gated verification flows.

Two flows share the OTC store:

* email ownership, keyed by the normalized email address, gating signup;
* document ownership, keyed by document id, gating disclosure of the
  owner's details alongside the ledger verification result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from docuchain.core.settings import Settings, settings
from docuchain.models import Document, Identity
from docuchain.repositories.document_repo import DocumentRepository
from docuchain.services.content_store import ContentStoreClient, get_content_store
from docuchain.services.documents import require_doc_id
from docuchain.services.email import (
    EmailDelivery,
    EmailService,
    get_email_service,
    is_valid_email,
    normalize_email,
    redact_email,
)
from docuchain.services.errors import (
    ContentStoreError,
    DocumentNotFound,
    InvalidEmail,
    OTCAttemptsExhausted,
    OTCExpired,
    OTCMismatch,
    OTCNotIssued,
    OwnerEmailMissing,
    UnknownIdentity,
)
from docuchain.services.ledger import LedgerClient, get_ledger_client
from docuchain.services.otc import OTCOutcome, OTCStore, get_otc_store
from docuchain.utils.email_template import code_email

logger = logging.getLogger(__name__)

_OUTCOME_ERRORS: dict[OTCOutcome, tuple[type[Exception], str]] = {
    OTCOutcome.ABSENT: (OTCNotIssued, "No verification code was issued or it was already used"),
    OTCOutcome.EXPIRED: (OTCExpired, "Verification code has expired"),
    OTCOutcome.EXHAUSTED: (OTCAttemptsExhausted, "Too many attempts, request a new code"),
    OTCOutcome.MISMATCH: (OTCMismatch, "Invalid verification code"),
}


def raise_for_outcome(outcome: OTCOutcome) -> None:
    """Raise the OTC error matching a rejected outcome."""
    if outcome is OTCOutcome.ACCEPTED:
        return
    exc_type, message = _OUTCOME_ERRORS[outcome]
    raise exc_type(message)


def email_key(email: str) -> str:
    return f"email:{email}"


def document_key(doc_id: str) -> str:
    return f"document:{doc_id}"


def _ttl_minutes(config: Settings) -> int:
    return max(1, config.otc_ttl_seconds // 60)


class EmailVerificationFlow:
    """Prove control of an email address with a mailed code."""

    def __init__(
        self,
        otc_store: OTCStore | None = None,
        email_service: EmailService | None = None,
        *,
        config: Settings | None = None,
    ) -> None:
        self.otc_store = otc_store or get_otc_store()
        self.email_service = email_service or get_email_service()
        self.config = config or settings

    @staticmethod
    def require_email(email: str | None) -> str:
        """Validate and normalize an email address, raising InvalidEmail."""
        if not is_valid_email(email):
            raise InvalidEmail("Invalid email address format")
        return normalize_email(email)  # type: ignore[arg-type]

    async def send_code(self, email: str) -> EmailDelivery:
        """Issue a code for `email` and mail it.

        Raises:
            InvalidEmail: The address is malformed.
            EmailDeliveryError: The transport failed or refused the recipient.
        """
        normalized = self.require_email(email)
        code = self.otc_store.issue(email_key(normalized))
        text, html = code_email(
            "Email Verification",
            "Your Email Verification Code",
            "email verification",
            code,
            _ttl_minutes(self.config),
        )
        delivery = await self.email_service.send(
            to=normalized,
            subject="Email Verification Code",
            text=text,
            html=html,
        )
        logger.info("Email verification code sent to %s", redact_email(normalized))
        return delivery

    def verify_code(self, email: str, code: str) -> None:
        """Consume the code for `email`, raising an OTC error if it is rejected."""
        normalized = self.require_email(email)
        outcome = self.otc_store.check(email_key(normalized), code)
        if outcome is not OTCOutcome.ACCEPTED:
            logger.warning(
                "Email verification failed for %s: %s", redact_email(normalized), outcome.value
            )
        raise_for_outcome(outcome)

    def check_code(self, email: str, code: str) -> bool:
        """Boolean variant of :meth:`verify_code`."""
        normalized = self.require_email(email)
        return self.otc_store.verify(email_key(normalized), code)


@dataclass
class DocumentVerification:
    """Outcome of a code-gated document verification."""

    is_verified: bool
    document: Document | None = None
    owner: Identity | None = None
    photo: bytes | None = None


class DocumentVerificationFlow:
    """Mail a code to a document's owner, then disclose details on a correct code."""

    def __init__(
        self,
        db: Session,
        *,
        otc_store: OTCStore | None = None,
        email_service: EmailService | None = None,
        ledger: LedgerClient | None = None,
        content_store: ContentStoreClient | None = None,
        config: Settings | None = None,
    ) -> None:
        self.repo = DocumentRepository(db)
        self.otc_store = otc_store or get_otc_store()
        self.email_service = email_service or get_email_service()
        self.ledger = ledger or get_ledger_client()
        self.content_store = content_store or get_content_store()
        self.config = config or settings

    def _load_document(self, doc_id: str) -> Document:
        document = self.repo.find_by_id(doc_id)
        if document is None:
            raise DocumentNotFound("Document not found")
        return document

    async def request_code(self, doc_id: str) -> EmailDelivery:
        """Issue a code for `doc_id` and mail it to the owner.

        Raises:
            InvalidDocumentId: `doc_id` is empty.
            DocumentNotFound: No local record for `doc_id`.
            OwnerEmailMissing: The owner is unknown or has no email on file.
            EmailDeliveryError: The transport failed.
        """
        doc_id = require_doc_id(doc_id)
        document = self._load_document(doc_id)
        owner = self.repo.find_owner(document)
        if owner is None or not owner.email:
            raise OwnerEmailMissing("Document owner email not found")

        code = self.otc_store.issue(document_key(doc_id))
        text, html = code_email(
            "Document Verification",
            "Your Document Verification Code",
            "document verification",
            code,
            _ttl_minutes(self.config),
        )
        delivery = await self.email_service.send(
            to=owner.email,
            subject="Document Verification Code",
            text=text,
            html=html,
        )
        logger.info(
            "Document verification code for %s sent to %s", doc_id, redact_email(owner.email)
        )
        return delivery

    async def verify(self, doc_id: str, code: str) -> DocumentVerification:
        """Check the code, then ask the ledger whether the document is anchored.

        The owner's photo is attached on a best-effort basis: a content-store
        failure is logged and the result is returned without it.

        Raises:
            InvalidDocumentId: `doc_id` is empty.
            OTCError: The code was rejected (see :func:`raise_for_outcome`).
            LedgerError: The ledger could not answer.
            DocumentNotFound: The ledger knows the document but no local record exists.
            UnknownIdentity: The document's owner has no identity record.
        """
        doc_id = require_doc_id(doc_id)
        outcome = self.otc_store.check(document_key(doc_id), code)
        if outcome is not OTCOutcome.ACCEPTED:
            logger.warning("Document code rejected for %s: %s", doc_id, outcome.value)
        raise_for_outcome(outcome)

        is_verified = await self.ledger.verify_document(doc_id)
        logger.info("Ledger verification for %s: %s", doc_id, is_verified)
        if not is_verified:
            return DocumentVerification(is_verified=False)

        document = self._load_document(doc_id)
        owner = self.repo.find_owner(document)
        if owner is None:
            raise UnknownIdentity("Document owner not found")

        photo: bytes | None = None
        if owner.photo_cid:
            try:
                photo = await self.content_store.fetch(owner.photo_cid)
            except ContentStoreError as err:
                logger.warning("Could not fetch owner photo for %s: %s", doc_id, err)

        return DocumentVerification(
            is_verified=True,
            document=document,
            owner=owner,
            photo=photo,
        )
