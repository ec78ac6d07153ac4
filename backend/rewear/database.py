"""
ReWear Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    PostgreSQL (asyncpg):
        pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600
    SQLite (aiosqlite):
        In-memory: a single shared connection (StaticPool), otherwise each
        connection would open its own empty database.
        File: the default pool, one connection per session, so a rollback
        in one session never discards another session's pending writes.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from rewear.config import settings


def _is_memory_sqlite(database_url: str) -> bool:
    database = database_url.split("://", 1)[-1].lstrip("/").split("?", 1)[0]
    return database in ("", ":memory:") or "mode=memory" in database_url


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the configured backend."""
    if database_url.startswith("sqlite"):
        if _is_memory_sqlite(database_url):
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for `database_url` with backend-appropriate pooling."""
    return create_async_engine(
        database_url,
        echo=settings.log_level == "DEBUG",
        **_engine_options(database_url),
    )


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings.database_url)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after the swap service
# commits its settlement transaction
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, Alembic and `init_models()`.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Services that need an explicit commit point (swap acceptance) commit
    themselves; the commit here is then a no-op.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def init_models(target: AsyncEngine = engine) -> None:
    """
    What:  Creates all tables that do not exist yet.
    When:  At startup when DB_AUTO_CREATE is set, and in the test suite.
    """
    # Model modules register their tables on Base.metadata when imported
    from rewear import models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
