"""
Shared fixtures: a throwaway database, a session bound to it, users of both
roles and an HTTP client wired to the same session.
"""
import os
import tempfile
from pathlib import Path

# Test database URL - Use env var for CI, fallback to a local SQLite file
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///" + str(Path(tempfile.gettempdir()) / "charity_test.db")
)
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from charity.core.auth import Principal, create_access_token
from charity.database.database import Base, enable_sqlite_foreign_keys, get_db
from charity.main import app
from charity.models import User

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False
)
enable_sqlite_foreign_keys(test_engine)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_db():
    """Create test database and tables"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Teardown - drop all tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def db_session(test_db):
    """Get database session for tests"""
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session):
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# USERS
# ============================================================================

async def _create_user(db_session, email, role="user", name=None) -> User:
    user = User(email=email, name=name or email.split("@")[0], role=role)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def donor(db_session):
    """A regular user"""
    return await _create_user(db_session, "alice@example.com")


@pytest_asyncio.fixture
async def other_donor(db_session):
    """A second regular user"""
    return await _create_user(db_session, "bob@example.org")


@pytest_asyncio.fixture
async def admin_user(db_session):
    """An administrator"""
    return await _create_user(db_session, "admin@example.com", role="admin", name="Admin")


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, role=user.role, email=user.email)


def auth_headers(user: User) -> dict:
    token = create_access_token({"id": user.id, "role": user.role, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def donor_principal(donor):
    return principal_for(donor)


@pytest.fixture
def other_principal(other_donor):
    return principal_for(other_donor)


@pytest.fixture
def admin_principal(admin_user):
    return principal_for(admin_user)


@pytest.fixture
def donor_headers(donor):
    return auth_headers(donor)


@pytest.fixture
def other_headers(other_donor):
    return auth_headers(other_donor)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)
