"""Document issuance, ownership transfer and ledger-backed read authorization."""

from __future__ import annotations

import base64
import binascii
import logging

from sqlalchemy.orm import Session

from docuchain.core.security import normalize_address
from docuchain.core.settings import settings
from docuchain.models import Document
from docuchain.repositories.document_repo import DocumentRepository
from docuchain.services.auth import require_address
from docuchain.services.content_store import ContentStoreClient, get_content_store
from docuchain.services.errors import (
    AccessCheckFailed,
    DocumentNotFound,
    InvalidDocumentId,
    InvalidDocumentUpload,
    LedgerError,
    NotDocumentOwner,
)
from docuchain.services.ledger import LedgerClient, get_ledger_client

logger = logging.getLogger(__name__)


def require_doc_id(doc_id: str | None) -> str:
    """Return `doc_id` stripped, raising InvalidDocumentId when it is blank."""
    if not doc_id or not doc_id.strip():
        raise InvalidDocumentId("Document ID is required")
    return doc_id.strip()


def check_upload(data: bytes, limit: int | None = None) -> bytes:
    """Reject empty payloads and payloads over `limit` bytes."""
    limit = limit if limit is not None else settings.max_upload_bytes
    if not data:
        raise InvalidDocumentUpload("Uploaded content is empty")
    if len(data) > limit:
        raise InvalidDocumentUpload(f"Uploaded content exceeds {limit} bytes")
    return data


def decode_upload(value: str, limit: int | None = None) -> bytes:
    """Decode standard base64 upload content and apply :func:`check_upload`."""
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise InvalidDocumentUpload("Uploaded content is not valid base64") from err
    return check_upload(data, limit)


class DocumentAccessAuthorizer:
    """Ask the ledger whether a caller may read a document."""

    def __init__(self, ledger: LedgerClient | None = None) -> None:
        self.ledger = ledger or get_ledger_client()

    async def authorize(self, document_id: str, caller_address: str) -> bool:
        """Return True iff the caller is the document's issuer or current recipient.

        Raises:
            InvalidDocumentId: `document_id` is empty.
            AccessCheckFailed: The ledger could not answer.
        """
        document_id = require_doc_id(document_id)
        address = normalize_address(caller_address)
        try:
            allowed = await self.ledger.can_access_document(document_id, address)
        except LedgerError as err:
            logger.warning("Access check failed for document %s: %s", document_id, err)
            raise AccessCheckFailed("Could not verify document access") from err

        if not allowed:
            logger.info("Wallet %s denied access to document %s", address, document_id)
        return allowed


class DocumentRegistry:
    """Anchor documents on the ledger and keep the local records in step."""

    def __init__(
        self,
        db: Session,
        *,
        ledger: LedgerClient | None = None,
        content_store: ContentStoreClient | None = None,
    ) -> None:
        self.db = db
        self.repo = DocumentRepository(db)
        self.ledger = ledger or get_ledger_client()
        self.content_store = content_store or get_content_store()

    async def issue(
        self,
        issuer: str,
        recipient: str,
        doc_code: str,
        file_name: str,
        content: bytes,
        file_type: str | None = None,
    ) -> Document:
        """Store `content`, anchor its hash on the ledger and record the document.

        Raises:
            InvalidAddress: `issuer` or `recipient` is not a wallet address.
            InvalidDocumentUpload: `content` is empty or too large.
            ContentStoreError: The file could not be stored.
            LedgerError: The ledger rejected or failed the transaction.
        """
        issuer = require_address(issuer)
        recipient = require_address(recipient)
        check_upload(content)

        ipfs_hash = await self.content_store.add(content, file_name)
        doc_id = await self.ledger.issue_document(issuer, recipient, ipfs_hash)

        document = self.repo.add(
            Document(
                doc_id=doc_id,
                doc_code=doc_code,
                issuer=issuer,
                recipient=recipient,
                ipfs_hash=ipfs_hash,
                file_name=file_name,
                file_type=file_type,
                file_size=len(content),
            )
        )
        self.db.commit()

        logger.info("Document %s issued by %s to %s", doc_id, issuer, recipient)
        return document

    async def transfer(self, doc_id: str, caller: str, new_owner: str) -> Document:
        """Hand `doc_id` from its current recipient `caller` to `new_owner`.

        The ledger transaction runs first; the local recipient only changes
        once the ledger confirms it.

        Raises:
            InvalidDocumentId: `doc_id` is blank.
            InvalidAddress: `new_owner` is not a wallet address.
            DocumentNotFound: No local record exists for `doc_id`.
            NotDocumentOwner: `caller` is not the current recipient.
            LedgerError: The ledger rejected or failed the transaction.
        """
        doc_id = require_doc_id(doc_id)
        caller = normalize_address(caller)
        new_owner = require_address(new_owner)

        document = self.repo.find_by_id(doc_id)
        if document is None:
            raise DocumentNotFound("Document not found")
        if document.recipient != caller:
            raise NotDocumentOwner("Only the current owner can transfer this document")

        await self.ledger.transfer_ownership(doc_id, caller, new_owner)
        self.repo.update_recipient(doc_id, new_owner)
        self.db.commit()

        logger.info("Document %s transferred from %s to %s", doc_id, caller, new_owner)
        return document

    async def ledger_status(self, doc_id: str) -> bool:
        """Return the ledger's verdict for `doc_id` without disclosing anything else."""
        return await self.ledger.verify_document(require_doc_id(doc_id))
