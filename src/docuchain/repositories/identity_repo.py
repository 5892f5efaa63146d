"""Data access helpers for identities and their authentication state.

Every write that races with another request is expressed as a single
conditional ``UPDATE`` so the database, not Python, arbitrates:

* nonce consumption is a compare-and-clear on ``current_nonce``;
* failed attempts use ``auth_attempts = auth_attempts + 1``;
* lock expiry is cleared only when ``locked_until`` is already in the past.

Callers own the transaction and commit after each unit of work.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from docuchain.models import Identity, IdentityAuthState, LoginEvent

__all__ = ["IdentityRepository"]

_PROFILE_FIELDS = frozenset(
    {
        "display_name",
        "email",
        "email_verified",
        "legal_name",
        "date_of_birth",
        "national_uid",
        "photo_cid",
        "kyc_verified",
        "roles",
        "status",
    }
)


class IdentityRepository:
    """Thin wrapper around database access for identity records."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def find_by_address(self, address: str) -> Identity | None:
        """Return the identity for a lowercase address."""
        return self.session.get(Identity, address)

    def find_by_email(self, email: str) -> Identity | None:
        """Return the identity registered with `email`, if any."""
        result = self.session.execute(select(Identity).where(Identity.email == email))
        return result.scalars().first()

    def get_auth_state(self, address: str) -> IdentityAuthState | None:
        """Return a freshly loaded auth-state row."""
        result = self.session.execute(
            select(IdentityAuthState)
            .where(IdentityAuthState.address == address)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def upsert_by_address(
        self,
        address: str,
        changes: Mapping[str, Any],
        *,
        create_if_missing: bool = False,
    ) -> tuple[Identity | None, bool]:
        """Apply profile `changes` to an identity, optionally creating it.

        Returns:
            ``(identity, created)``; identity is None when it does not exist and
            `create_if_missing` is False.
        """
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported identity fields: {sorted(unknown)}")

        identity = self.find_by_address(address)
        created = False
        if identity is None:
            if not create_if_missing:
                return None, False
            identity = Identity(address=address)
            identity.auth_state = IdentityAuthState(address=address, auth_attempts=0)
            self.session.add(identity)
            created = True
        elif identity.auth_state is None:
            identity.auth_state = IdentityAuthState(address=address, auth_attempts=0)

        for field, value in changes.items():
            setattr(identity, field, value)
        self.session.flush()
        return identity, created

    def clear_stale_lock(self, address: str, now: datetime) -> bool:
        """Clear an expired lock and reset the attempt counter.

        Returns True if a stale lock was cleared.
        """
        result = self.session.execute(
            update(IdentityAuthState)
            .where(
                IdentityAuthState.address == address,
                IdentityAuthState.locked_until.is_not(None),
                IdentityAuthState.locked_until <= now,
            )
            .values(locked_until=None, auth_attempts=0)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def set_nonce(self, address: str, nonce: str, now: datetime) -> None:
        """Store `nonce` as the only valid challenge for `address`."""
        self.session.execute(
            update(IdentityAuthState)
            .where(IdentityAuthState.address == address)
            .values(current_nonce=nonce, last_nonce_generated_at=now)
            .execution_options(synchronize_session=False)
        )

    def increment_auth_attempts(
        self,
        address: str,
        *,
        now: datetime,
        threshold: int,
        lock_for: timedelta,
    ) -> IdentityAuthState | None:
        """Atomically count a failed attempt and lock once `threshold` is reached."""
        self.session.execute(
            update(IdentityAuthState)
            .where(IdentityAuthState.address == address)
            .values(auth_attempts=IdentityAuthState.auth_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            update(IdentityAuthState)
            .where(
                IdentityAuthState.address == address,
                IdentityAuthState.auth_attempts >= threshold,
                IdentityAuthState.locked_until.is_(None),
            )
            .values(locked_until=now + lock_for)
            .execution_options(synchronize_session=False)
        )
        return self.get_auth_state(address)

    def consume_nonce(
        self,
        address: str,
        nonce: str,
        *,
        now: datetime,
        source_address: str | None,
        history_limit: int,
    ) -> bool:
        """Compare-and-clear `nonce` and record the login.

        Returns False when another request already consumed or replaced the
        nonce; in that case nothing else is written.
        """
        result = self.session.execute(
            update(IdentityAuthState)
            .where(
                IdentityAuthState.address == address,
                IdentityAuthState.current_nonce == nonce,
            )
            .values(
                current_nonce=None,
                auth_attempts=0,
                locked_until=None,
                last_login=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        self.session.add(LoginEvent(address=address, timestamp=now, source_address=source_address))
        self.session.flush()
        self._trim_login_history(address, history_limit)
        return True

    def _trim_login_history(self, address: str, limit: int) -> None:
        keep = (
            select(LoginEvent.id)
            .where(LoginEvent.address == address)
            .order_by(LoginEvent.id.desc())
            .limit(limit)
        )
        self.session.execute(
            delete(LoginEvent)
            .where(LoginEvent.address == address, LoginEvent.id.not_in(keep))
            .execution_options(synchronize_session=False)
        )

    def login_history(self, address: str) -> list[LoginEvent]:
        """Return the retained login events, oldest first."""
        result = self.session.execute(
            select(LoginEvent).where(LoginEvent.address == address).order_by(LoginEvent.id)
        )
        return list(result.scalars())

    def reset_lock(self, address: str) -> bool:
        """Clear any lock and the attempt counter unconditionally."""
        result = self.session.execute(
            update(IdentityAuthState)
            .where(IdentityAuthState.address == address)
            .values(locked_until=None, auth_attempts=0)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
