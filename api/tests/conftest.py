"""
Shared test fixtures for the forum API tests.

Provides database session management, test clients, user fixtures and
factories for categories and discussions.
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from forum_api.auth.dependencies import (
    SCOPE_DISCUSSIONS_ADD,
    SCOPE_DISCUSSIONS_EDIT,
    SCOPE_SETTINGS_MANAGE,
)
from forum_api.auth.keys import issue_api_key
from forum_api.config import settings
from forum_api.database import Base, get_db
from forum_api.main import app
from forum_api.middleware.rate_limit import reset_limiter
from forum_api.models.category import Category
from forum_api.models.discussion import Discussion
from forum_api.models.user import APIKey, User, UserRole
from forum_api.services.tags import TagService
from forum_api.theming import service as theme_service

TEST_DATABASE_URL = settings.test_database_url

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# --- Isolation Fixtures ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Clear rate limit counters before each test."""
    reset_limiter()
    yield


@pytest.fixture(autouse=True)
def restore_variable_providers():
    """Undo variable providers registered by a test."""
    saved = list(theme_service._variable_providers)
    yield
    theme_service._variable_providers[:] = saved


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create tables before each test function, drop after.
    Provides isolated database state per test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.
    Overrides database dependency with test session.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Authentication Helper Fixtures ---


@pytest.fixture
def auth_headers():
    """Factory fixture for creating X-API-Key headers."""

    def _auth_headers(api_key: str) -> dict[str, str]:
        return {"X-API-Key": api_key}

    return _auth_headers


# --- User Fixtures ---


MEMBER_SCOPES = [SCOPE_DISCUSSIONS_ADD]
EDITOR_SCOPES = [SCOPE_DISCUSSIONS_ADD, SCOPE_DISCUSSIONS_EDIT]
ADMIN_SCOPES = [SCOPE_SETTINGS_MANAGE, SCOPE_DISCUSSIONS_ADD, SCOPE_DISCUSSIONS_EDIT]


async def create_user(
    db_session: AsyncSession,
    username: str,
    roles: list[str],
    scopes: list[str],
    expires_at: datetime | None = None,
) -> dict[str, Any]:
    """Create a user with roles and an API key in the database."""
    issued = issue_api_key()
    user = User(username=username, display_name=username.title())
    user.roles = [UserRole(role=role) for role in roles]
    user.api_keys = [
        APIKey(
            key_hash=issued.key_hash,
            key_prefix=issued.display_prefix,
            name="Test key",
            scopes=scopes,
            expires_at=expires_at,
        )
    ]
    db_session.add(user)
    await db_session.commit()

    return {
        "user_id": user.user_id,
        "username": user.username,
        "api_key": issued.plaintext,
        "roles": roles,
        "scopes": scopes,
        "user": user,
    }


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> dict[str, Any]:
    """A member who can start discussions."""
    return await create_user(db_session, "testuser", roles=["member"], scopes=MEMBER_SCOPES)


@pytest_asyncio.fixture
async def second_user(db_session: AsyncSession) -> dict[str, Any]:
    """Another member, for ownership checks."""
    return await create_user(db_session, "seconduser", roles=["member"], scopes=MEMBER_SCOPES)


@pytest_asyncio.fixture
async def reader_user(db_session: AsyncSession) -> dict[str, Any]:
    """A member whose key carries no scopes."""
    return await create_user(db_session, "readeruser", roles=["member"], scopes=[])


@pytest_asyncio.fixture
async def editor_user(db_session: AsyncSession) -> dict[str, Any]:
    """A staff member who may edit other people's discussions."""
    return await create_user(db_session, "editoruser", roles=["member", "staff"], scopes=EDITOR_SCOPES)


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> dict[str, Any]:
    """An admin who can manage site settings."""
    return await create_user(db_session, "adminuser", roles=["admin"], scopes=ADMIN_SCOPES)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory fixture for users with custom roles, scopes or key expiry."""

    async def _make_user(
        username: str,
        roles: list[str] | None = None,
        scopes: list[str] | None = None,
        expires_at: datetime | None = None,
    ) -> dict[str, Any]:
        return await create_user(db_session, username, roles or [], scopes or [], expires_at)

    return _make_user


# --- Content Factories ---


@pytest.fixture
def make_category(db_session: AsyncSession):
    """Factory fixture creating a category row."""

    async def _make_category(
        name: str,
        url_code: str | None = None,
        parent_category_id: int | None = None,
        archived: bool = False,
        view_role: str | None = None,
    ) -> Category:
        category = Category(
            name=name,
            url_code=url_code or name.lower().replace(" ", "-"),
            parent_category_id=parent_category_id,
            archived=archived,
            view_role=view_role,
        )
        db_session.add(category)
        await db_session.commit()
        return category

    return _make_category


@pytest.fixture
def make_discussion(db_session: AsyncSession):
    """Factory fixture creating a discussion row."""

    async def _make_discussion(
        name: str,
        user: dict[str, Any],
        category_id: int | None = None,
        body: str = "Discussion body",
        tags: list[str] | None = None,
        date_inserted: datetime | None = None,
    ) -> Discussion:
        discussion = Discussion(
            name=name,
            body=body,
            category_id=category_id,
            insert_user_id=user["user_id"],
        )
        if date_inserted is not None:
            discussion.date_inserted = date_inserted
        discussion.tags = await TagService(db_session).ensure_tags(tags or [])
        db_session.add(discussion)
        await db_session.commit()
        return discussion

    return _make_discussion


# --- Utility Fixtures ---


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-02-01 12:00:00"):
            # time is frozen
    """
    from freezegun import freeze_time

    return freeze_time
