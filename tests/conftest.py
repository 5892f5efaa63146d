# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OTC_BACKEND", "memory")

from docuchain.api.v1.dependencies import (  # noqa: E402
    get_content_store_dep,
    get_email_service_dep,
    get_ledger_client_dep,
    get_otc_store_dep,
)
from docuchain.db.session import Base  # noqa: E402
from docuchain.db.session import get_db as app_get_session  # noqa: E402
from docuchain.main import app as fastapi_app  # noqa: E402
from docuchain.models import Document, Identity  # noqa: E402
from docuchain.repositories.identity_repo import IdentityRepository  # noqa: E402
from docuchain.services.content_store import ContentStoreClient  # noqa: E402
from docuchain.services.email import EmailDelivery, EmailService  # noqa: E402
from docuchain.services.ledger import LedgerClient  # noqa: E402
from docuchain.services.otc import MemoryOTCStore  # noqa: E402
from docuchain.services.tokens import TokenKind, TokenService  # noqa: E402

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def otc_store() -> MemoryOTCStore:
    """Return a fresh in-memory OTC store."""
    return MemoryOTCStore(ttl_seconds=300, max_attempts=3)


@pytest.fixture()
def email_service() -> AsyncMock:
    """Email transport that accepts every message without sending it."""
    service = AsyncMock(spec=EmailService)

    async def _send(*, to: str, subject: str, text: str, html: str | None = None) -> EmailDelivery:
        return EmailDelivery(message_id="<test@docuchain>", accepted=[to])

    service.send.side_effect = _send
    return service


@pytest.fixture()
def ledger() -> AsyncMock:
    client = AsyncMock(spec=LedgerClient)
    client.can_access_document.return_value = True
    client.verify_document.return_value = True
    client.issue_document.return_value = "0x" + "ef" * 32
    client.transfer_ownership.return_value = None
    return client


@pytest.fixture()
def content_store() -> AsyncMock:
    store = AsyncMock(spec=ContentStoreClient)
    store.fetch.return_value = b"%PDF-1.7 test document"
    store.add.return_value = "bafkreistoredcontent"
    return store


@pytest.fixture(autouse=True)
def override_collaborators(
    app: FastAPI,
    otc_store: MemoryOTCStore,
    email_service: AsyncMock,
    ledger: AsyncMock,
    content_store: AsyncMock,
) -> Iterator[None]:
    """Route every collaborator dependency to the per-test doubles."""
    overrides: dict[Callable[..., Any], Callable[[], Any]] = {
        get_otc_store_dep: lambda: otc_store,
        get_email_service_dep: lambda: email_service,
        get_ledger_client_dep: lambda: ledger,
        get_content_store_dep: lambda: content_store,
    }
    for dependency, override in overrides.items():
        app.dependency_overrides[dependency] = override

    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def token_service() -> TokenService:
    return TokenService()


def sign_message(account: LocalAccount, message: str) -> str:
    """Return a 0x-prefixed personal_sign signature of `message`."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


def create_identity(
    db: Session,
    address: str,
    **changes: Any,
) -> Identity:
    identity, _ = IdentityRepository(db).upsert_by_address(
        address.lower(), changes, create_if_missing=True
    )
    db.commit()
    assert identity is not None
    return identity


@pytest.fixture()
def wallet() -> LocalAccount:
    """Return a fresh random wallet."""
    return Account.create()


@pytest.fixture()
def other_wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def identity(db_session: Session, wallet: LocalAccount) -> Identity:
    """Create and return a registered, active identity for `wallet`."""
    return create_identity(
        db_session,
        wallet.address,
        display_name="Test Holder",
        email="holder@example.com",
        email_verified=True,
        legal_name="Test Holder",
        date_of_birth="1990-01-01",
        national_uid="UID-0001",
    )


@pytest.fixture()
def auth_headers(identity: Identity, token_service: TokenService) -> dict[str, str]:
    """Return authorization headers for the registered identity."""
    token = token_service.issue(identity.address, TokenKind.ACCESS)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def document(db_session: Session, identity: Identity, other_wallet: LocalAccount) -> Document:
    """Create a document issued by `other_wallet` to the registered identity."""
    doc = Document(
        doc_id="0x" + "ab" * 32,
        doc_code="DEG-2024-0001",
        issuer=other_wallet.address.lower(),
        recipient=identity.address,
        ipfs_hash="bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
        file_name="degree.pdf",
        file_type="application/pdf",
        file_size=22,
    )
    db_session.add(doc)
    db_session.commit()
    return doc


@pytest.fixture()
def sign() -> Callable[[LocalAccount, str], str]:
    """Expose :func:`sign_message` to test modules."""
    return sign_message


@pytest.fixture()
def make_identity(db_session: Session) -> Callable[..., Identity]:
    """Factory for extra identities: ``make_identity(address, **profile)``."""

    def _make(address: str, **changes: Any) -> Identity:
        return create_identity(db_session, address, **changes)

    return _make
