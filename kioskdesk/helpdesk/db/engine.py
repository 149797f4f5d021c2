"""Async SQLAlchemy engine and session factory.

Accepts both ``postgresql+asyncpg://`` and ``postgresql+psycopg://`` URLs;
Alembic rewrites the former to psycopg for its synchronous run.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with production-ready pool settings.

    - **pool_size=5** / **max_overflow=10**: baseline and burst connections.
    - **pool_pre_ping=True**: test connections before checkout to survive
      server-side disconnects.
    - **pool_recycle=3600**: recycle connections after 1 hour.

    All defaults can be overridden via *kwargs*.
    """
    defaults = {
        "echo": False,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
    defaults.update(kwargs)  # type: ignore[arg-type]
    return create_async_engine(database_url, **defaults)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads (implicit IO is forbidden in async
    code).
    """
    return async_sessionmaker(engine, expire_on_commit=False)
