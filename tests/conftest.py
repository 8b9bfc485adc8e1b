# File: tests/conftest.py
"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tilldesk.core.db import Base, get_db
from tilldesk.main import create_app

# Import all models
from tilldesk.models.branch import Branch  # noqa: F401
from tilldesk.models.denomination_type import DenominationType  # noqa: F401
from tilldesk.models.register import Register  # noqa: F401
from tilldesk.models.register_audit_log import RegisterAuditLog  # noqa: F401
from tilldesk.models.register_session import RegisterSession  # noqa: F401
from tilldesk.models.register_session_denomination import RegisterSessionDenomination  # noqa: F401
from tilldesk.models.user import User
from tests.factories import UserFactory


@pytest.fixture
def test_database_url(tmp_path) -> str:
    """TEST_DATABASE_URL when set (e.g. PostgreSQL in CI), else a throwaway SQLite file."""
    return os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'tilldesk_test.db'}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(test_database_url: str):
    """Create fresh schema for each test."""
    engine = create_async_engine(test_database_url, echo=False)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker):
    """Create fresh DB session for each test."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, request) -> User:
    """Active operator with a unique email per test."""
    return await UserFactory.create(
        db_session,
        email=f"operator_{request.node.name[:40]}@example.com",
        first_name="Test",
        last_name="Operator",
    )


def _build_app(session_maker):
    app = create_app()

    # New session per request, like production get_db
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def client(session_maker, db_session: AsyncSession, test_user: User):
    """Async test client authenticated as ``test_user`` through X-User-ID."""
    app = _build_app(session_maker)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-ID": str(test_user.id)},
    ) as ac:
        # Attach test_user to client for test access
        ac.test_user = test_user
        ac.db_session = db_session
        ac.test_app = app
        yield ac


@pytest_asyncio.fixture
async def unauthenticated_client(session_maker, db_session: AsyncSession):
    """AsyncClient without X-User-ID (for testing auth failures)."""
    app = _build_app(session_maker)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        ac.db_session = db_session
        yield ac
