# src/docuchain/main.py
"""Main entry point for the DocuChain registry API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docuchain.api.v1 import auth_router, documents_router
from docuchain.core.settings import settings
from docuchain.db.session import create_tables
from docuchain.services.content_store import get_content_store
from docuchain.services.ledger import get_ledger_client
from docuchain.services.otc import OTCSweeper, get_otc_store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Wallet-authenticated document registry API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(documents_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.effective_database_url.startswith("sqlite"):
        create_tables()
    sweeper = OTCSweeper(get_otc_store())
    await sweeper.start()
    app.state.otc_sweeper = sweeper
    logger.info("%s %s started (OTC backend: %s)", settings.app_name, settings.app_version, settings.otc_backend)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper: OTCSweeper | None = getattr(app.state, "otc_sweeper", None)
    if sweeper:
        await sweeper.stop()
    await get_ledger_client().close()
    await get_content_store().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "docuchain.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        workers=settings.workers,
    )
