# src/docuchain/models/identity.py
"""SQLAlchemy models for wallet-backed identities."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docuchain.db.session import Base
from docuchain.db.time import utcnow

IDENTITY_STATUSES = ("active", "suspended", "blacklisted")
IDENTITY_ROLES = ("user", "issuer", "admin", "reviewer")


def _default_roles() -> list[str]:
    return ["user"]


class Identity(Base):
    """Identity keyed by a lowercase Ethereum wallet address."""

    __tablename__ = "identity"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legal_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[str | None] = mapped_column(Text, nullable=True)
    national_uid: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_cid: Mapped[str | None] = mapped_column(Text, nullable=True)

    kyc_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=_default_roles)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    auth_state: Mapped[IdentityAuthState] = relationship(
        "IdentityAuthState",
        back_populates="identity",
        cascade="all, delete-orphan",
        uselist=False,
    )
    login_events: Mapped[list[LoginEvent]] = relationship(
        "LoginEvent",
        back_populates="identity",
        cascade="all, delete-orphan",
        order_by="LoginEvent.id",
    )

    @property
    def is_active(self) -> bool:
        """Return True if the identity may authenticate."""
        return self.status == "active"


class IdentityAuthState(Base):
    """Per-identity challenge, lockout and last-login bookkeeping."""

    __tablename__ = "identity_auth_state"

    address: Mapped[str] = mapped_column(
        String(42),
        ForeignKey("identity.address", ondelete="CASCADE"),
        primary_key=True,
    )
    current_nonce: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_nonce_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    auth_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    identity: Mapped[Identity] = relationship("Identity", back_populates="auth_state")


class LoginEvent(Base):
    """One successful login, kept in a bounded per-identity history."""

    __tablename__ = "login_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(42),
        ForeignKey("identity.address", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    source_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    identity: Mapped[Identity] = relationship("Identity", back_populates="login_events")
