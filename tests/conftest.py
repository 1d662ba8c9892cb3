"""
Shared test fixtures for the Sweet Shop test suite.

Every test gets its own in-memory database (aiosqlite + StaticPool) wired
into the app by overriding the ``get_db`` dependency.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sweetshop.api.v1.deps import get_db
from sweetshop.api.v1.endpoints import health
from sweetshop.core.security import create_access_token, get_password_hash
from sweetshop.db.base import Base
from sweetshop.main import app
from sweetshop.models.sweet import Sweet
from sweetshop.models.user import Role, User

PASSWORD = "password123"
_PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def _wire_test_database(session_factory, monkeypatch):
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    monkeypatch.setattr(health, "async_session_factory", session_factory)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(_wire_test_database) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Users & tokens ──────────────────────────────────────────────────
async def _make_user(db: AsyncSession, username: str, role: Role) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=_PASSWORD_HASH,
        role=role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin", Role.ADMIN)


@pytest.fixture
async def regular_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "testuser", Role.USER)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(admin_user.id, Role.ADMIN)}"}


@pytest.fixture
def user_headers(regular_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(regular_user.id, Role.USER)}"}


# ── Inventory ───────────────────────────────────────────────────────
@pytest.fixture
def make_sweet(db_session: AsyncSession):
    """Insert a sweet directly, bypassing the API."""

    async def _make(name: str, category: str = "Candy", price: float = 2.99, quantity: int = 10) -> Sweet:
        sweet = Sweet(name=name, category=category, price=price, quantity=quantity)
        db_session.add(sweet)
        await db_session.commit()
        await db_session.refresh(sweet)
        return sweet

    return _make
