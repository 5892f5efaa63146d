"""Document-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .auth import OTC_PATTERN


class DocumentRecord(BaseModel):
    """Off-chain metadata for a document."""

    doc_id: str
    doc_code: str
    issuer: str
    recipient: str
    ipfs_hash: str
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DocumentContentResponse(BaseModel):
    """Document metadata plus its bytes from the content store."""

    document: DocumentRecord
    content_base64: str = Field(..., description="Standard base64 encoding of the file")


class DocumentCodeVerifyRequest(BaseModel):
    code: str = Field(..., pattern=OTC_PATTERN, description="Six-digit code mailed to the owner")


class OwnerDetails(BaseModel):
    """Owner identity disclosed after a correct document code."""

    address: str
    legal_name: str | None = None
    national_uid: str | None = None
    date_of_birth: str | None = None
    photo_base64: str | None = Field(None, description="Owner photo, when available")
    photo_type: str | None = None


class DocumentVerificationResponse(BaseModel):
    is_verified: bool = Field(..., description="True if the ledger anchors the document")
    document: DocumentRecord | None = None
    owner: OwnerDetails | None = None


class DocumentIssueRequest(BaseModel):
    """Anchor a new document issued by the caller to `recipient`."""

    recipient: str = Field(..., description="0x-prefixed address of the document owner")
    doc_code: str = Field(..., min_length=1, description="Issuer's reference code for the document")
    file_name: str = Field(..., min_length=1, max_length=255, description="Original file name")
    file_type: str | None = Field(None, description="MIME type of the file")
    content_base64: str = Field(..., description="Standard base64 encoding of the file")


class DocumentTransferRequest(BaseModel):
    new_owner: str = Field(..., description="0x-prefixed address of the new recipient")


class LedgerStatusResponse(BaseModel):
    """Public ledger verdict for a document, without owner details."""

    doc_id: str
    is_verified: bool = Field(..., description="True if the ledger anchors the document")
