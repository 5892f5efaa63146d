# src/docuchain/models/__init__.py
"""SQLAlchemy models for the DocuChain registry."""

from .document import Document
from .identity import (
    IDENTITY_ROLES,
    IDENTITY_STATUSES,
    Identity,
    IdentityAuthState,
    LoginEvent,
)

__all__ = [
    "Document",
    "Identity", "IdentityAuthState", "LoginEvent",
    "IDENTITY_ROLES", "IDENTITY_STATUSES",
]
