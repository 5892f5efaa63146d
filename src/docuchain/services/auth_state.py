"""Explicit authentication phase of an identity.

The stored columns (``current_nonce``, ``locked_until`` ...) are projected into
exactly one of three phases so callers branch on a tag instead of on
combinations of nullable fields.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from docuchain.db.time import as_utc
from docuchain.models import IdentityAuthState


@dataclass(frozen=True)
class Unchallenged:
    """No challenge outstanding; a nonce must be requested first."""

    attempts: int = 0


@dataclass(frozen=True)
class Challenged:
    """A nonce has been issued and not yet consumed."""

    nonce: str
    issued_at: datetime | None
    attempts: int = 0


@dataclass(frozen=True)
class Locked:
    """Too many failed attempts; nothing is accepted until `until`."""

    until: datetime
    nonce: str | None = None


AuthPhase = Unchallenged | Challenged | Locked


def phase_of(state: IdentityAuthState | None, now: datetime) -> AuthPhase:
    """Project a stored auth-state row onto its phase at `now`.

    A lock whose deadline has passed does not count; the repository clears it
    on the next write.
    """
    if state is None:
        return Unchallenged()

    locked_until = as_utc(state.locked_until)
    if locked_until is not None and locked_until > now:
        return Locked(until=locked_until, nonce=state.current_nonce)

    attempts = state.auth_attempts or 0
    if state.current_nonce:
        return Challenged(
            nonce=state.current_nonce,
            issued_at=as_utc(state.last_nonce_generated_at),
            attempts=attempts,
        )
    return Unchallenged(attempts=attempts)
