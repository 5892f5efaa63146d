# src/docuchain/api/v1/endpoints/documents.py
"""Document issuance, transfer, retrieval and verification endpoints."""

from __future__ import annotations

import base64
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from docuchain.api.v1.dependencies import (
    ContentStoreDep,
    CurrentIdentityDep,
    EmailServiceDep,
    LedgerClientDep,
    OTCStoreDep,
    SessionDep,
)
from docuchain.api.v1.errors import to_http_exception
from docuchain.repositories.document_repo import DocumentRepository
from docuchain.schemas.auth import CodeSentResponse
from docuchain.schemas.document import (
    DocumentCodeVerifyRequest,
    DocumentContentResponse,
    DocumentIssueRequest,
    DocumentRecord,
    DocumentTransferRequest,
    DocumentVerificationResponse,
    LedgerStatusResponse,
    OwnerDetails,
)
from docuchain.services.documents import DocumentAccessAuthorizer, DocumentRegistry, decode_upload
from docuchain.services.errors import DocuChainError
from docuchain.services.verification import DocumentVerificationFlow

router = APIRouter(prefix="/documents", tags=["documents"])

PHOTO_CONTENT_TYPE = "image/jpeg"


def get_access_authorizer(ledger: LedgerClientDep) -> DocumentAccessAuthorizer:
    return DocumentAccessAuthorizer(ledger)


def get_registry(
    db: SessionDep,
    ledger: LedgerClientDep,
    content_store: ContentStoreDep,
) -> DocumentRegistry:
    return DocumentRegistry(db, ledger=ledger, content_store=content_store)


def get_document_flow(
    db: SessionDep,
    otc_store: OTCStoreDep,
    email_service: EmailServiceDep,
    ledger: LedgerClientDep,
    content_store: ContentStoreDep,
) -> DocumentVerificationFlow:
    return DocumentVerificationFlow(
        db,
        otc_store=otc_store,
        email_service=email_service,
        ledger=ledger,
        content_store=content_store,
    )


AuthorizerDep = Annotated[DocumentAccessAuthorizer, Depends(get_access_authorizer)]
DocumentFlowDep = Annotated[DocumentVerificationFlow, Depends(get_document_flow)]
RegistryDep = Annotated[DocumentRegistry, Depends(get_registry)]


def _encode_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@router.get(
    "/{doc_id}",
    summary="Retrieve a document the caller issued or owns",
    response_model=DocumentContentResponse,
)
async def get_document(
    doc_id: str,
    current: CurrentIdentityDep,
    db: SessionDep,
    authorizer: AuthorizerDep,
    content_store: ContentStoreDep,
) -> DocumentContentResponse:
    """Return metadata and file bytes once the ledger confirms the caller's access."""
    try:
        allowed = await authorizer.authorize(doc_id, current.address)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this document",
        )

    document = DocumentRepository(db).find_by_id(doc_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    try:
        content = await content_store.fetch(document.ipfs_hash)
    except DocuChainError as err:
        raise to_http_exception(err) from err

    return DocumentContentResponse(
        document=DocumentRecord.model_validate(document),
        content_base64=_encode_b64(content),
    )


@router.post(
    "/{doc_id}/otc",
    summary="Mail a verification code to the document's owner",
    response_model=CodeSentResponse,
)
async def request_document_code(doc_id: str, flow: DocumentFlowDep) -> CodeSentResponse:
    try:
        delivery = await flow.request_code(doc_id)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return CodeSentResponse(sent=bool(delivery.accepted))


@router.post(
    "/{doc_id}/verify",
    summary="Verify a document with the owner's code",
    response_model=DocumentVerificationResponse,
)
async def verify_document(
    doc_id: str,
    payload: DocumentCodeVerifyRequest,
    flow: DocumentFlowDep,
) -> DocumentVerificationResponse:
    """Return the ledger verdict and, when verified, the document and its owner."""
    try:
        result = await flow.verify(doc_id, payload.code)
    except DocuChainError as err:
        raise to_http_exception(err) from err

    if not result.is_verified or result.document is None or result.owner is None:
        return DocumentVerificationResponse(is_verified=result.is_verified)

    owner = result.owner
    return DocumentVerificationResponse(
        is_verified=True,
        document=DocumentRecord.model_validate(result.document),
        owner=OwnerDetails(
            address=owner.address,
            legal_name=owner.legal_name,
            national_uid=owner.national_uid,
            date_of_birth=owner.date_of_birth,
            photo_base64=_encode_b64(result.photo) if result.photo else None,
            photo_type=PHOTO_CONTENT_TYPE if result.photo else None,
        ),
    )


@router.post(
    "",
    summary="Issue a document to a recipient",
    response_model=DocumentRecord,
    status_code=status.HTTP_201_CREATED,
)
async def issue_document(
    payload: DocumentIssueRequest,
    current: CurrentIdentityDep,
    registry: RegistryDep,
) -> DocumentRecord:
    """Store the file, anchor it on the ledger with the caller as issuer, and record it."""
    try:
        document = await registry.issue(
            current.address,
            payload.recipient,
            payload.doc_code,
            payload.file_name,
            decode_upload(payload.content_base64),
            file_type=payload.file_type,
        )
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return DocumentRecord.model_validate(document)


@router.post(
    "/{doc_id}/transfer",
    summary="Transfer a document the caller owns",
    response_model=DocumentRecord,
)
async def transfer_document(
    doc_id: str,
    payload: DocumentTransferRequest,
    current: CurrentIdentityDep,
    registry: RegistryDep,
) -> DocumentRecord:
    try:
        document = await registry.transfer(doc_id, current.address, payload.new_owner)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return DocumentRecord.model_validate(document)


@router.get(
    "/{doc_id}/verification",
    summary="Ask the ledger whether a document is anchored",
    response_model=LedgerStatusResponse,
)
async def document_ledger_status(doc_id: str, registry: RegistryDep) -> LedgerStatusResponse:
    """Public check; discloses no owner details."""
    try:
        is_verified = await registry.ledger_status(doc_id)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return LedgerStatusResponse(doc_id=doc_id, is_verified=is_verified)
