"""Shared test fixtures for the lead engine API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.services import create_services
from app.main import app

# Import all models to ensure they're registered with Base.metadata
from app.models.profile import Profile
from app.models.upload_batch import UploadBatch  # noqa: F401
from app.models.lead import Lead  # noqa: F401
from app.models.activity_log import ActivityLogEntry  # noqa: F401
from app.models.lead_note import LeadNote  # noqa: F401
from app.models.sale import Sale  # noqa: F401
from app.models.agent_progress import AgentProgress  # noqa: F401
from app.models.distribution_run import DistributionRun  # noqa: F401
from app.services.auth import create_access_token


# Use aiosqlite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
TestSession = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    # Fresh locks for every test's event loop
    app.state.services = create_services()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with TestSession() as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture
async def client():
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db():
    """Direct DB session for test setup/assertions."""
    async with TestSession() as session:
        yield session


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id)}"}


async def _make_profile(db, email: str, role: str, full_name: str, is_active: bool = True) -> Profile:
    profile = Profile(email=email, full_name=full_name, role=role, is_active=is_active)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


@pytest_asyncio.fixture
async def manager(db):
    return await _make_profile(db, "manager@example.com", "manager", "Mira Manager")


@pytest_asyncio.fixture
async def agent(db):
    return await _make_profile(db, "ayse@example.com", "agent", "Ayşe Agent")


@pytest_asyncio.fixture
async def second_agent(db):
    return await _make_profile(db, "burak@example.com", "agent", "Burak Agent")


@pytest_asyncio.fixture
async def third_agent(db):
    return await _make_profile(db, "cem@example.com", "agent", "Cem Agent")
