"""Engine and session factories for the audit store.

Postgres URLs are routed to asyncpg and SQLite URLs to aiosqlite, so the same
``DATABASE_URL`` works for a deployment and for a local file database.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def _normalize_db_url(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if not sep or scheme not in ASYNC_DRIVERS:
        return url
    return f"{ASYNC_DRIVERS[scheme]}://{rest}"


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine for ``url`` with the matching async driver."""
    db_url = _normalize_db_url(url)
    if make_url(db_url).get_backend_name() == "sqlite":
        # SQLite has no server side to ping and serializes writers itself.
        return create_async_engine(db_url, echo=echo)
    return create_async_engine(db_url, pool_pre_ping=True, echo=echo)


def get_async_engine() -> AsyncEngine:
    """Return the configured engine, creating it on first use."""
    global _engine
    if _engine is None:
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not set")
        _engine = create_engine_for(settings.database_url, echo=settings.sql_echo)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(get_async_engine(), expire_on_commit=False)
    return _sessionmaker


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine.

    Each ``asyncio.run`` gets its own loop, so CLI commands dispose the engine
    before their loop closes.
    """
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


async def ping_db() -> bool:
    """Return True if the audit database answers."""
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Audit database is not reachable", exc_info=True)
        return False
    return True
