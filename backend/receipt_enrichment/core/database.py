"""Database configuration and session management.

This module constructs an asynchronous SQLAlchemy engine and session
factory for the application.  Instead of a process-wide engine the
application owns a :class:`Database` instance which is created in the
FastAPI lifespan (or injected by tests) and stored on ``app.state``.

Connection strings are normalised for async usage:

  * ``sqlite://`` URLs are upgraded to ``sqlite+aiosqlite://``.
  * ``postgresql://``, ``postgres://``, ``postgresql+psycopg2://`` and
    ``postgresql+asyncpg://`` URLs are rewritten to ``postgresql+psycopg://``.

When no ``DATABASE_URL`` is configured a local SQLite database may be used
in development if ``DB_DEV_FALLBACK_SQLITE=true``.  Otherwise creating the
database raises immediately.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from receipt_enrichment.core.config import Settings

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./receipts.db"

_POSTGRES_DRIVERS = {"postgresql", "postgres", "postgresql+psycopg2", "postgresql+asyncpg"}

# Declarative base
Base = declarative_base()


def normalize_database_url(db_url: str) -> str:
    """Rewrite ``db_url`` so that it uses an async driver."""
    url_obj = make_url(db_url)
    driver = url_obj.drivername or ""
    if driver == "sqlite":
        url_obj = url_obj.set(drivername="sqlite+aiosqlite")
    elif driver in _POSTGRES_DRIVERS:
        url_obj = url_obj.set(drivername="postgresql+psycopg")
    return url_obj.render_as_string(hide_password=False)


def resolve_database_url(settings: Settings) -> str:
    """Pick the connection string from settings, honouring the dev fallback."""
    if settings.DATABASE_URL:
        return normalize_database_url(settings.DATABASE_URL)
    if not settings.DB_DEV_FALLBACK_SQLITE:
        raise RuntimeError(
            "No database URL provided via DATABASE_URL; with "
            "DB_DEV_FALLBACK_SQLITE=false, a Postgres URL is required."
        )
    logger.warning("DATABASE_URL not set; falling back to %s", SQLITE_FALLBACK_URL)
    return SQLITE_FALLBACK_URL


def masked_url(db_url: str) -> str:
    """Return ``db_url`` with the password removed, for logging."""
    try:
        return make_url(db_url).render_as_string(hide_password=True)
    except Exception:
        return "<unparseable database url>"


class Database:
    """Async engine plus session factory owned by one application instance."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = normalize_database_url(url)
        engine_kwargs: dict[str, Any] = dict(echo=echo)
        url_obj = make_url(self.url)
        if url_obj.get_backend_name() == "sqlite" and url_obj.database in (None, "", ":memory:"):
            # All sessions must share the single in-memory connection
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
        logger.info("Creating async engine with URL: %s", masked_url(self.url))
        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(resolve_database_url(settings), echo=settings.DATABASE_ECHO)

    async def create_all(self) -> None:
        """Create all tables defined on the declarative ``Base``."""
        async with self.engine.begin() as conn:
            # Import all models to ensure metadata is populated
            from receipt_enrichment.models import tables  # noqa: F401
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database has not been initialised for this application")
    return database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields a database session.

    Each session is scoped to the request and closed after use.
    """
    database = get_database(request)
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
