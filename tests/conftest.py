"""
ART Job Board - Test Configuration

Pytest fixtures and configuration.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ["DATABASE_URL_ASYNC"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "testing"
os.environ["EMAIL_PROVIDER"] = "mock"

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from jobboard.database import Base, get_async_session
from jobboard.models.client import Client, LoyaltyTier
from jobboard.models.project import EstimateStatus, Project
from jobboard.models.user import User, UserRole
from jobboard.services.email_service import EmailService
from jobboard.utils.security import create_access_token, get_password_hash
from main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "TestPassword123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session
    app.state.email_service = EmailService(provider="mock")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def _add(db_session: AsyncSession, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def test_client_account(db_session: AsyncSession) -> Client:
    """A roofing client on Elite in Sydney."""
    return await _add(db_session, Client(
        name="Harbour Roofing",
        email="office@harbourroofing.com.au",
        timezone="Australia/Sydney",
        loyalty_tier=LoyaltyTier.ELITE,
        tier_effective_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
    ))


@pytest_asyncio.fixture
async def other_client_account(db_session: AsyncSession) -> Client:
    """A second client, for visibility checks."""
    return await _add(db_session, Client(
        name="Outback Gutters",
        email="jobs@outbackgutters.com.au",
        loyalty_tier=LoyaltyTier.CASUAL,
    ))


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="admin@artestimating.com.au",
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name="Alex",
        last_name="Admin",
        role=UserRole.ADMIN,
    ))


@pytest_asyncio.fixture
async def estimator_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="estimator@artestimating.com.au",
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name="Sam",
        last_name="Estimator",
        role=UserRole.ESTIMATOR,
    ))


@pytest_asyncio.fixture
async def portal_user(db_session: AsyncSession, test_client_account: Client) -> User:
    return await _add(db_session, User(
        email="builder@harbourroofing.com.au",
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name="Jordan",
        last_name="Builder",
        role=UserRole.USER,
        client_id=test_client_account.id,
    ))


@pytest_asyncio.fixture
async def test_project(db_session: AsyncSession, test_client_account: Client) -> Project:
    """A two-unit Standard job ready for review."""
    return await _add(db_session, Project(
        project_number="26-03-001",
        name="12 Ocean St re-roof",
        client_id=test_client_account.id,
        posting_date=date(2026, 3, 2),
        plan_type="Standard",
        qty=Decimal("2"),
        estimate_status=EstimateStatus.ESTIMATE_COMPLETED,
        estimate_sent=[],
    ))


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header for a user."""
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def estimator_headers(estimator_user: User) -> Dict[str, str]:
    return auth_headers(estimator_user)


@pytest.fixture
def portal_headers(portal_user: User) -> Dict[str, str]:
    return auth_headers(portal_user)
