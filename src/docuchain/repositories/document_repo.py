"""Data access helpers for document records."""
from __future__ import annotations

from sqlalchemy.orm import Session

from docuchain.models import Document, Identity

__all__ = ["DocumentRepository"]


class DocumentRepository:
    """Thin wrapper around database access for documents."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_id(self, doc_id: str) -> Document | None:
        """Return the document stored under `doc_id`."""
        return self.session.get(Document, doc_id)

    def find_owner(self, document: Document) -> Identity | None:
        """Return the identity of the document's current recipient."""
        return self.session.get(Identity, document.recipient.lower())

    def add(self, document: Document) -> Document:
        """Stage a new document record; the caller commits."""
        document.issuer = document.issuer.lower()
        document.recipient = document.recipient.lower()
        self.session.add(document)
        self.session.flush()
        return document

    def update_recipient(self, doc_id: str, new_owner: str) -> Document | None:
        """Point `doc_id` at its new owner; returns None when the record is unknown."""
        document = self.find_by_id(doc_id)
        if document is None:
            return None
        document.recipient = new_owner.lower()
        self.session.flush()
        return document
