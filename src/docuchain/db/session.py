"""Engine and session factory for the identity and document store."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docuchain.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import docuchain.models  # noqa: E402,F401


def engine_options(url: str) -> dict[str, Any]:
    """Return ``create_engine`` keyword arguments suited to `url`.

    SQLite connections are shared with the worker threads FastAPI runs sync
    dependencies on, and an in-memory database must live on a single
    connection or every checkout would see an empty schema.
    """
    parsed = make_url(url)
    options: dict[str, Any] = {"echo": settings.sql_debug}
    if parsed.get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
        return options

    options["connect_args"] = {"check_same_thread": False}
    if parsed.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def build_engine(url: str) -> Engine:
    """Create an engine for `url`, enforcing foreign keys on SQLite."""
    created = create_engine(url, **engine_options(url))
    if created.dialect.name == "sqlite":

        @event.listens_for(created, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return created


engine = build_engine(settings.effective_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; rolled back if the handler raised mid-transaction."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """Create all tables on the configured engine (SQLite deployments and tests)."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all tables on the configured engine."""
    Base.metadata.drop_all(bind=engine)
