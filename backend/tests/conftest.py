"""
ReWear Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite with a
       single shared connection), so stores and services run against a
       real SQLAlchemy session without PostgreSQL.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:          In-memory database with all tables created
    ├── session_factory:    async_sessionmaker bound to db_engine
    ├── db_session:         One session for service-level tests
    ├── make_user:          Async factory inserting a User
    ├── make_item:          Async factory inserting an Item
    ├── temp_storage:       Temporary directory for media tests
    ├── sample_image_bytes: Minimal JPEG bytes for upload tests
    └── test_client:        HTTPX AsyncClient wired to the app and db_engine
"""

import os
import tempfile

# Override settings for testing BEFORE any rewear imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="rewear_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""

from typing import Dict, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rewear import models  # noqa: F401
from rewear.auth import Principal, create_access_token, hash_password
from rewear.database import Base, get_db_session
from rewear.models.item import Item
from rewear.models.user import User
from rewear.stores import CatalogStore, IdentityStore

# Hashing is deliberately slow; one hash serves every fixture user
TEST_PASSWORD = "secret123"
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, is_admin=user.is_admin)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id, user.email, user.is_admin)
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Insert a user and return it.

    Usage:
        alice = await make_user("Alice", points=100)
    """
    async def _make(
        name: str = "Alice",
        points: int = 100,
        is_admin: bool = False,
        email: Optional[str] = None,
        location: str = "Berlin",
    ) -> User:
        user = User(
            email=email or f"{name.lower()}-{uuid4().hex[:8]}@swapmail.org",
            password_hash=_TEST_PASSWORD_HASH,
            name=name,
            points=points,
            swap_count=0,
            location=location,
            is_admin=is_admin,
        )
        return await IdentityStore(db_session).insert(user)

    return _make


@pytest.fixture
def make_item(db_session):
    """
    Insert a listing owned by `owner` and return it.

    Usage:
        jacket = await make_item(bob, "Denim Jacket", points_value=75)
    """
    async def _make(
        owner: User,
        title: str = "Denim Jacket",
        points_value: int = 50,
        description: str = "Lightly worn, fits true to size",
        category: str = "outerwear",
        tags: Optional[List[str]] = None,
        is_available: bool = True,
        is_approved: bool = True,
        images: Optional[List[str]] = None,
    ) -> Item:
        item = Item(
            title=title,
            description=description,
            category=category,
            type="jacket",
            size="M",
            condition="good",
            tags=tags or [],
            images=images or [],
            uploader_id=owner.id,
            uploader_name=owner.name,
            uploader_avatar=owner.avatar,
            location=owner.location,
            points_value=points_value,
            is_available=is_available,
            is_approved=is_approved,
        )
        return await CatalogStore(db_session).insert(item)

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Media Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).
    Not a real photograph, but it passes MIME validation.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    Request sessions come from the per-test engine. Data created through
    `db_session` must be committed before the app can rely on it.
    """
    from rewear.main import app

    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
