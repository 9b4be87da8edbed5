"""
Shared fixtures.

The environment is set before anything under ``app`` is imported so the
settings object picks up the test database and auth secret.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import Any, Dict, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db, get_session_factory
from app.main import app
from app.models import Article, ArticleGeneration, Project, User
from app.services.generation_client import get_generation_client
from tests.helpers import TEST_DATABASE_URL, TEST_USER_ID, FakeGenerationClient, make_token

@pytest.fixture
async def engine():
    """One in-memory database per test, shared by every session through StaticPool."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def generation_client():
    return FakeGenerationClient()


@pytest.fixture
async def client(session_factory, generation_client):
    """HTTP client bound to the app with database and generation service overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_generation_client] = lambda: generation_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
async def user(session) -> User:
    user = User(id=TEST_USER_ID, email="writer@example.com", name="Writer")
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def project(session, user) -> Project:
    project = Project(user_id=user.id, name="Blog", website_url="https://blog.example.com")
    session.add(project)
    await session.commit()
    return project


@pytest.fixture
def make_article(session, project):
    """Insert an article directly, optionally with a generation snapshot."""

    async def _make(
        title: str = "Draft article",
        status: str = "idea",
        generation: Optional[Dict[str, Any]] = None,
        **fields: Any,
    ) -> Article:
        article = Article(
            user_id=project.user_id,
            project_id=project.id,
            title=title,
            status=status,
            keywords=fields.pop("keywords", []),
            **fields,
        )
        session.add(article)
        await session.flush()
        if generation is not None:
            session.add(ArticleGeneration(
                article_id=article.id,
                user_id=project.user_id,
                project_id=project.id,
                **generation,
            ))
        await session.commit()
        return article

    return _make
