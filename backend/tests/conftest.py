"""Root fixtures.

Repository tests run against a real PostgreSQL database named
``<DATABASE_NAME>_test``; the schema is created from the ORM metadata for each
test and dropped afterwards. When the server is unreachable those tests skip
so the in-memory service and API suites still run anywhere.
"""

import socket
import uuid
from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models import Base, User

TEST_DATABASE_URL = settings.database_url.rsplit("/", 1)[0] + (
    f"/{settings.database_name}_test"
)

# Every API test in local auth mode acts as this user.
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

# Test-only signing secret, long enough for the production validator.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105


def _postgres_reachable() -> bool:
    try:
        with socket.create_connection(
            (settings.database_host, settings.database_port), timeout=1
        ):
            return True
    except OSError:
        return False


_POSTGRES_UP = _postgres_reachable()


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    if not _POSTGRES_UP:
        pytest.skip(
            f"PostgreSQL not reachable at {settings.database_host}:"
            f"{settings.database_port}"
        )

    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session whose work is rolled back after the test."""
    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Persisted user whose id is TEST_USER_ID."""
    user = User(id=TEST_USER_ID, email="test@example.com", full_name="Test User")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Turn slowapi off so API tests can call endpoints repeatedly."""
    from app.core.rate_limiting import limiter

    previous = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = previous


@pytest.fixture(autouse=True)
def reset_email_singleton() -> Iterator[None]:
    """Drop the cached email transport so settings changes take effect."""
    from app.core.email import reset_email_transport

    reset_email_transport()
    yield
    reset_email_transport()
