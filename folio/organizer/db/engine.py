"""Async SQLAlchemy engine and session factory.

Uses psycopg3 which supports both sync and async with the same
``postgresql+psycopg://`` URL.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with production-ready pool settings.

    - **pool_size=5** / **max_overflow=10**: baseline and burst connections.
    - **pool_pre_ping=True**: survive server-side disconnects.
    - **pool_recycle=3600**: recycle connections hourly.

    All defaults can be overridden via *kwargs*.  Pool arguments are skipped
    for SQLite URLs, whose default pool does not accept them.
    """
    defaults: dict[str, object] = {"echo": False, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        defaults.update(pool_size=5, max_overflow=10, pool_recycle=3600)
    defaults.update(kwargs)
    return create_async_engine(database_url, **defaults)  # type: ignore[arg-type]


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads.
    """
    return async_sessionmaker(engine, expire_on_commit=False)
