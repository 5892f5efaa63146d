# src/docuchain/api/v1/endpoints/auth.py
"""Authentication endpoints for the DocuChain API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from docuchain.api.v1.dependencies import (
    ContentStoreDep,
    CurrentIdentityDep,
    EmailServiceDep,
    OTCStoreDep,
    SessionDep,
    TokenServiceDep,
)
from docuchain.api.v1.errors import to_http_exception
from docuchain.repositories.identity_repo import IdentityRepository
from docuchain.schemas.auth import (
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
from docuchain.services.auth import AuthService
from docuchain.services.documents import decode_upload
from docuchain.services.errors import DocuChainError
from docuchain.services.registration import RegistrationService
from docuchain.services.verification import EmailVerificationFlow

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_auth_service(db: SessionDep, tokens: TokenServiceDep) -> AuthService:
    return AuthService(db, tokens=tokens)


def get_email_flow(otc_store: OTCStoreDep, email_service: EmailServiceDep) -> EmailVerificationFlow:
    return EmailVerificationFlow(otc_store, email_service)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
EmailFlowDep = Annotated[EmailVerificationFlow, Depends(get_email_flow)]


@router.post(
    "/nonce",
    summary="Issue a sign-in challenge for a wallet",
    response_model=NonceResponse,
)
async def issue_nonce(payload: NonceRequest, auth: AuthServiceDep) -> NonceResponse:
    """Return a fresh nonce; any previous one stops being valid."""
    try:
        nonce = auth.issue_nonce(payload.address)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return NonceResponse(nonce=nonce)


@router.post(
    "/verify-signature",
    summary="Exchange a signed challenge for session tokens",
    response_model=TokenPairResponse,
)
async def verify_signature(
    payload: VerifySignatureRequest,
    request: Request,
    auth: AuthServiceDep,
) -> TokenPairResponse:
    """Verify an EIP-191 signature over the outstanding nonce."""
    source_address = payload.source_address
    if source_address is None and request.client is not None:
        source_address = request.client.host

    try:
        pair = auth.verify_signature(
            payload.address,
            payload.signature,
            payload.nonce,
            source_address=source_address,
        )
    except DocuChainError as err:
        raise to_http_exception(err) from err

    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type="bearer",
    )


@router.post(
    "/refresh-token",
    summary="Mint a new access token",
    response_model=AccessTokenResponse,
)
async def refresh_token(payload: RefreshTokenRequest, auth: AuthServiceDep) -> AccessTokenResponse:
    try:
        access_token = auth.refresh_access_token(payload.refresh_token)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return AccessTokenResponse(access_token=access_token, token_type="bearer")


@router.get(
    "/me",
    summary="Describe the authenticated identity",
    response_model=IdentityResponse,
)
async def read_me(current: CurrentIdentityDep, db: SessionDep) -> IdentityResponse:
    return _identity_response(IdentityRepository(db), current.address)


def _identity_response(repo: IdentityRepository, address: str) -> IdentityResponse:
    identity = repo.find_by_address(address)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    state = repo.get_auth_state(identity.address)
    return IdentityResponse(
        address=identity.address,
        display_name=identity.display_name,
        email_verified=identity.email_verified,
        roles=list(identity.roles or []),
        status=identity.status,
        last_login=state.last_login if state is not None else None,
    )


@router.post(
    "/email/otc",
    summary="Mail a one-time code to an email address",
    response_model=CodeSentResponse,
)
async def send_email_code(payload: EmailCodeRequest, flow: EmailFlowDep) -> CodeSentResponse:
    try:
        delivery = await flow.send_code(payload.email)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return CodeSentResponse(sent=bool(delivery.accepted))


@router.post(
    "/email/otc/verify",
    summary="Check an email one-time code",
    response_model=EmailVerifiedResponse,
)
async def verify_email_code(
    payload: EmailCodeVerifyRequest,
    db: SessionDep,
    flow: EmailFlowDep,
) -> EmailVerifiedResponse:
    """Consume the code; an existing identity holding the email is marked verified."""
    try:
        verified = RegistrationService(db, flow).confirm_email(payload.email, payload.code)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return EmailVerifiedResponse(verified=verified)


@router.post(
    "/signup",
    summary="Register a wallet with a verified email",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    payload: SignupRequest,
    db: SessionDep,
    flow: EmailFlowDep,
    content_store: ContentStoreDep,
) -> SignupResponse:
    """Create an identity; an already registered wallet gets 409."""
    try:
        photo = decode_upload(payload.photo_base64) if payload.photo_base64 else None
        identity = await RegistrationService(db, flow, content_store).signup(
            payload.address,
            payload.email,
            payload.code,
            display_name=payload.display_name,
            photo=photo,
        )
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return SignupResponse(address=identity.address, photo_cid=identity.photo_cid)


@router.put(
    "/me/email",
    summary="Change the authenticated identity's email",
    response_model=IdentityResponse,
)
async def change_email(
    payload: EmailChangeRequest,
    current: CurrentIdentityDep,
    db: SessionDep,
    flow: EmailFlowDep,
) -> IdentityResponse:
    """Move the caller to a new email proven with a code sent to it."""
    try:
        RegistrationService(db, flow).change_email(current.address, payload.email, payload.code)
    except DocuChainError as err:
        raise to_http_exception(err) from err
    return _identity_response(IdentityRepository(db), current.address)
