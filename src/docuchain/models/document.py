# src/docuchain/models/document.py
"""SQLAlchemy model for documents anchored on the ledger."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docuchain.db.session import Base
from docuchain.db.time import utcnow


class Document(Base):
    """Off-chain metadata for a document whose hash lives in the content store."""

    __tablename__ = "document"

    doc_id: Mapped[str] = mapped_column(String(66), primary_key=True)
    doc_code: Mapped[str] = mapped_column(Text, nullable=False)
    issuer: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    recipient: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    ipfs_hash: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
