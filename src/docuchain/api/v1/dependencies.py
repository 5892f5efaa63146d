"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from docuchain.api.v1.errors import to_http_exception
from docuchain.db.session import get_db
from docuchain.services.content_store import ContentStoreClient, get_content_store
from docuchain.services.email import EmailService, get_email_service
from docuchain.services.errors import DocuChainError
from docuchain.services.ledger import LedgerClient, get_ledger_client
from docuchain.services.otc import OTCStore, get_otc_store
from docuchain.services.request_auth import AuthenticatedIdentity, RequestAuthenticator
from docuchain.services.tokens import TokenService, get_token_service

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_token_service_dep() -> TokenService:
    return get_token_service()


def get_otc_store_dep() -> OTCStore:
    return get_otc_store()


def get_email_service_dep() -> EmailService:
    return get_email_service()


def get_ledger_client_dep() -> LedgerClient:
    return get_ledger_client()


def get_content_store_dep() -> ContentStoreClient:
    return get_content_store()


TokenServiceDep = Annotated[TokenService, Depends(get_token_service_dep)]
OTCStoreDep = Annotated[OTCStore, Depends(get_otc_store_dep)]
EmailServiceDep = Annotated[EmailService, Depends(get_email_service_dep)]
LedgerClientDep = Annotated[LedgerClient, Depends(get_ledger_client_dep)]
ContentStoreDep = Annotated[ContentStoreClient, Depends(get_content_store_dep)]


def get_current_identity(
    db: SessionDep,
    tokens: TokenServiceDep,
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
) -> AuthenticatedIdentity:
    """Resolve the bearer access token to an active identity.

    Raises:
        HTTPException: 401 for missing, malformed, expired or wrong-kind tokens
            and unknown identities; 403 for inactive identities.
    """
    try:
        return RequestAuthenticator(db, tokens).authenticate(authorization)
    except DocuChainError as err:
        raise to_http_exception(err) from err


# Type alias for current identity dependency
CurrentIdentityDep = Annotated[AuthenticatedIdentity, Depends(get_current_identity)]
