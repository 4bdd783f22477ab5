"""
Database Connection Module
Async engine, session factory and the request-scoped session dependency.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from portal.config import settings

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

async_engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

# Shared by request sessions and by the audit trail's own sessions
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Commits when the route returns and rolls back if it raises. Routes that
    commit themselves (logins, user changes) leave nothing for this commit.
    Audit records never ride on this session; see ``portal.audit.trail``.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for code running outside a request (scripts, maintenance)."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of pooled connections on shutdown."""
    await async_engine.dispose()
