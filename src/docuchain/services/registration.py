"""Identity signup gated by email ownership."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from docuchain.models import Identity
from docuchain.repositories.identity_repo import IdentityRepository
from docuchain.services.auth import require_address
from docuchain.services.content_store import ContentStoreClient, get_content_store
from docuchain.services.documents import check_upload
from docuchain.services.email import redact_email
from docuchain.services.errors import AddressInUse, EmailInUse, UnknownIdentity
from docuchain.services.verification import EmailVerificationFlow

logger = logging.getLogger(__name__)


class RegistrationService:
    """Create identities and change their email once the address has been proven."""

    def __init__(
        self,
        db: Session,
        email_flow: EmailVerificationFlow | None = None,
        content_store: ContentStoreClient | None = None,
    ) -> None:
        self.db = db
        self.repo = IdentityRepository(db)
        self.email_flow = email_flow or EmailVerificationFlow()
        self.content_store = content_store or get_content_store()

    async def signup(
        self,
        address: str,
        email: str,
        code: str,
        display_name: str | None = None,
        photo: bytes | None = None,
    ) -> Identity:
        """Register `address` with a verified email.

        Signup only ever creates; an existing identity changes its email
        through :meth:`change_email`, which requires a session for that wallet.
        The photo is stored only after the code is accepted.

        Raises:
            InvalidAddress: `address` is not a wallet address.
            InvalidEmail: `email` is malformed.
            AddressInUse: `address` is already registered.
            EmailInUse: Another identity already holds `email`.
            OTCError: The email code was rejected.
            InvalidDocumentUpload: `photo` is empty or too large.
            ContentStoreError: The photo could not be stored.
        """
        normalized = require_address(address)
        email = self.email_flow.require_email(email)

        if self.repo.find_by_address(normalized) is not None:
            raise AddressInUse("Wallet is already registered")
        if self.repo.find_by_email(email) is not None:
            raise EmailInUse("Email is already registered")

        if photo is not None:
            check_upload(photo)

        self.email_flow.verify_code(email, code)

        profile: dict[str, object] = {"email": email, "email_verified": True}
        if display_name is not None:
            profile["display_name"] = display_name
        if photo is not None:
            profile["photo_cid"] = await self.content_store.add(photo, "photo")
        identity, _ = self.repo.upsert_by_address(normalized, profile, create_if_missing=True)
        self.db.commit()

        logger.info("Identity %s registered with email %s", normalized, redact_email(email))
        return identity  # type: ignore[return-value]

    def change_email(self, address: str, email: str, code: str) -> Identity:
        """Replace the email of the authenticated identity at `address`.

        Raises:
            UnknownIdentity: No identity exists for `address`.
            InvalidEmail: `email` is malformed.
            EmailInUse: Another identity already holds `email`.
            OTCError: The code mailed to `email` was rejected.
        """
        normalized = require_address(address)
        identity = self.repo.find_by_address(normalized)
        if identity is None:
            raise UnknownIdentity("User not found")

        email = self.email_flow.require_email(email)
        holder = self.repo.find_by_email(email)
        if holder is not None and holder.address != normalized:
            raise EmailInUse("Email is already registered")

        self.email_flow.verify_code(email, code)

        previous = identity.email
        identity.email = email
        identity.email_verified = True
        self.db.commit()

        logger.info(
            "Identity %s changed email from %s to %s",
            normalized,
            redact_email(previous) if previous else "<none>",
            redact_email(email),
        )
        return identity

    def confirm_email(self, email: str, code: str) -> bool:
        """Consume an email code and mark the holder's email as verified.

        Returns False when the code is rejected; no identity is required.
        """
        email = self.email_flow.require_email(email)
        if not self.email_flow.check_code(email, code):
            return False

        identity = self.repo.find_by_email(email)
        if identity is not None and not identity.email_verified:
            identity.email_verified = True
            self.db.commit()
        return True
