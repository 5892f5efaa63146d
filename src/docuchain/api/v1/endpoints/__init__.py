# src/docuchain/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .documents import router as documents_router

__all__ = [
    "auth_router",
    "documents_router",
]
