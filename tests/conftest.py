"""
Inkpost Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test that touches storage gets a fresh in-memory SQLite database
       (aiosqlite on a StaticPool, foreign keys on), so tests never share rows.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:        in-memory engine with all tables created
    ├── db_session:       AsyncSession on db_engine, for service tests
    ├── author:           a stored User that posts can reference
    ├── mock_db_session:  AsyncMock session for pure unit tests
    ├── test_client:      HTTPX AsyncClient against the app, DB overridden
    ├── admin_headers:    Bearer header of a registered admin
    └── user_headers:     Bearer header of a registered non-admin
"""

import os

# Settings are read on first import of inkpost; configure them before that
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["LOGIN_RATE_LIMIT_ATTEMPTS"] = "1000"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from inkpost.database import Base, enable_sqlite_foreign_keys, get_db_session
from inkpost.models.post import Post  # noqa: F401
from inkpost.models.tag import PostTag, Tag  # noqa: F401
from inkpost.models.user import User
from inkpost.security import get_password_hash

ADMIN_EMAIL = "admin@example.com"
USER_EMAIL = "reader@example.com"
PASSWORD = "s3cret-pass"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the full schema.

    StaticPool keeps a single connection, otherwise every new connection
    would see its own empty :memory: database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def author(db_session) -> User:
    """An admin user stored directly, for service tests that create posts."""
    user = User(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        password_hash=get_password_hash(PASSWORD),
        is_admin=True,
    )
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
def mock_db_session():
    """
    Mock async database session for tests that only check control flow.

    get_bind() reports SQLite so dialect-specific inserts can be built.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.get_bind = MagicMock()
    session.get_bind.return_value.dialect.name = "sqlite"
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    get_db_session is overridden with the same commit/rollback contract,
    bound to the per-test in-memory database.
    """
    from inkpost.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def register_and_login(
    client: AsyncClient,
    email: str,
    first_name: str = "Grace",
    last_name: str = "Hopper",
    password: str = PASSWORD,
) -> Dict[str, str]:
    """Register an account, log in, and return its Authorization header."""
    response = await client.post(
        "/users/register",
        json={
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    response = await client.post("/users/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def admin_headers(test_client) -> Dict[str, str]:
    return await register_and_login(test_client, ADMIN_EMAIL)


@pytest_asyncio.fixture
async def user_headers(test_client) -> Dict[str, str]:
    return await register_and_login(test_client, USER_EMAIL, first_name="Regular")


@pytest.fixture
def login_as(test_client):
    """register_and_login bound to the test client, for tests needing extra accounts."""

    async def _login_as(email: str, **kwargs) -> Dict[str, str]:
        return await register_and_login(test_client, email, **kwargs)

    return _login_as
