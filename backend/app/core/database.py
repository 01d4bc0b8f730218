"""Async engine and sessions.

A request gets one session from get_db() and every store call in that
request flushes into it; the session commits once when the handler returns.
The expiry sweeper and the WebSocket handshake open short-lived sessions
from async_session_factory instead.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.log_level.upper() == "DEBUG" and settings.environment != "production",
)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on any error."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    await engine.dispose()
