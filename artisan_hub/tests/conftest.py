"""
Test fixtures for Artisan Hub backend tests.

Provides:
- In-memory SQLite database for isolated testing
- Async test client over the application built by create_app()
- Test data factories for users, follows, upgrade requests and profiles
"""
# IMPORTANT: Set environment variables BEFORE any other imports
import os

TEST_JWT_SECRET = "test_jwt_secret"

os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from datetime import datetime
from typing import AsyncGenerator, Callable, List, Optional

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from artisan_hub.app.core.auth import create_access_token
from artisan_hub.app.core.base import Base
from artisan_hub.app.core.settings import load_settings
from artisan_hub.app.main import create_app
from artisan_hub.app.models.user import User, Follow, UserRole
from artisan_hub.app.models.artisan import ArtisanProfile, ArtisanUpgradeRequest, UpgradeRequestStatus


# Test database URL - SQLite in-memory
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Create test engine with StaticPool for in-memory SQLite
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(scope="function")
async def test_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    Creates all tables before and drops after each test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


def build_app(**overrides):
    """Application wired to the shared in-memory engine."""
    values = {
        "JWT_SECRET": TEST_JWT_SECRET,
        "ENVIRONMENT": "development",
        "RATE_LIMIT_ENABLED": False,
        "DATABASE_URL": TEST_DATABASE_URL,
    }
    values.update(overrides)
    return create_app(settings=load_settings(**values), engine=test_engine)


@pytest.fixture
def app():
    return build_app()


@pytest.fixture
def app_factory() -> Callable:
    return build_app


@pytest.fixture
async def client(test_session: AsyncSession, app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.

    Each request gets its own session from app.state.sessionmaker, separate
    from test_session used by the fixtures.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


def auth_headers(user_id: str, role: str) -> dict:
    """Bearer header for the given identity."""
    token = create_access_token(user_id, role, TEST_JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


# --- Test Data Factories ---

@pytest.fixture
def make_user(test_session: AsyncSession) -> Callable:
    counter = {"n": 0}

    async def _make_user(
        username: Optional[str] = None,
        role: str = UserRole.CUSTOMER,
        first_name: str = "Test",
        last_name: str = "User",
        follower_count: int = 0,
        user_id: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
            follower_count=follower_count,
        )
        if user_id is not None:
            user.id = user_id
        test_session.add(user)
        await test_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_profile(test_session: AsyncSession, make_user) -> Callable:
    async def _make_profile(
        shop_name: str = "Test Shop",
        shop_description: Optional[str] = None,
        specialties: Optional[List[str]] = None,
        rating: Optional[float] = None,
        review_count: int = 0,
        total_sales: int = 0,
        is_verified: bool = True,
        follower_count: int = 0,
        created_at: Optional[datetime] = None,
        user: Optional[User] = None,
        **user_fields,
    ) -> ArtisanProfile:
        if user is None:
            user = await make_user(role=UserRole.ARTISAN, follower_count=follower_count, **user_fields)
        profile = ArtisanProfile(
            user=user,
            shop_name=shop_name,
            shop_description=shop_description,
            social_media={},
            rating=rating,
            review_count=review_count,
            total_sales=total_sales,
            is_verified=is_verified,
            specialty_rows=[],
        )
        if created_at is not None:
            profile.created_at = created_at
        profile.set_specialties(specialties or [])
        test_session.add(profile)
        await test_session.commit()
        return profile

    return _make_profile


@pytest.fixture
def make_request(test_session: AsyncSession) -> Callable:
    async def _make_request(
        user: User,
        shop_name: str = "Test Shop",
        status: str = UpgradeRequestStatus.PENDING,
        created_at: Optional[datetime] = None,
        specialties: Optional[List[str]] = None,
    ) -> ArtisanUpgradeRequest:
        request = ArtisanUpgradeRequest(
            user=user,
            shop_name=shop_name,
            specialties=specialties or [],
            social_media={},
            images=[],
            certificates=[],
            status=status,
        )
        if created_at is not None:
            request.created_at = created_at
        test_session.add(request)
        await test_session.commit()
        return request

    return _make_request


@pytest.fixture
async def test_user(make_user) -> User:
    """A customer with no upgrade request yet."""
    return await make_user(username="customer", first_name="Ada", last_name="Potter")


@pytest.fixture
async def test_admin(make_user) -> User:
    return await make_user(username="admin", role=UserRole.ADMIN)


@pytest.fixture
def follow(test_session: AsyncSession) -> Callable:
    async def _follow(follower: User, following: User) -> Follow:
        edge = Follow(follower_id=follower.id, following_id=following.id)
        test_session.add(edge)
        await test_session.commit()
        return edge

    return _follow


@pytest.fixture
def user_headers(test_user: User) -> dict:
    return auth_headers(test_user.id, test_user.role)


@pytest.fixture
def admin_headers(test_admin: User) -> dict:
    return auth_headers(test_admin.id, test_admin.role)


@pytest.fixture
def session_factory(test_session: AsyncSession):
    """Independent sessions for checking what was actually committed."""
    return TestSessionLocal


@pytest.fixture
def headers_for() -> Callable:
    return auth_headers
