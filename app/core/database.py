"""
Database configuration and connection management.
"""
from typing import Any, AsyncGenerator, Dict
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from .config import settings


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# JSONB on Postgres, plain JSON elsewhere (the test suite runs on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _async_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if url.startswith("sqlite") or settings.environment == "test":
        options["poolclass"] = NullPool
    else:
        options.update(pool_size=20, max_overflow=30, pool_recycle=3600)
    return options


DATABASE_URL = _async_url(settings.database_url)

# Create async engine with connection pooling
engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the factory used by background work outside a request."""
    return AsyncSessionLocal


async def init_db() -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        # Import all models to ensure they are registered
        from app.models import user, project, article, generation, webhook  # noqa

        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
