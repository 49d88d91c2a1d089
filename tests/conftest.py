import os
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import date, timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Settings are read at import time; make sure the required ones exist
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./scheduling.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from scheduling.config import settings  # noqa: E402
from scheduling.core.security import create_access_token  # noqa: E402
from scheduling.database import create_session_factory, get_db  # noqa: E402
from scheduling.dependencies import get_notification_service, get_user_service  # noqa: E402
from scheduling.main import app  # noqa: E402
from scheduling.models import metadata, users  # noqa: E402
from scheduling.schemas.users import UserInDB, UserRole  # noqa: E402
from scheduling.services.appointment_service import AppointmentService  # noqa: E402
from scheduling.services.appointment_store import AppointmentStore  # noqa: E402
from scheduling.services.notification_service import NotificationService  # noqa: E402
from scheduling.services.user_service import UserService  # noqa: E402

# Optional PostgreSQL test database; a throwaway SQLite file is used otherwise
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Safety check: prevent running tests against the application database
if TEST_DATABASE_URL and TEST_DATABASE_URL in (settings.database_url, settings.async_database_url):
    print("\n❌ CRITICAL ERROR: Test database URL is same as the application database!")
    print("This would DROP all application data during tests.")
    print("Please set TEST_DATABASE_URL to a separate test database in .env")
    sys.exit(1)

if TEST_DATABASE_URL and TEST_DATABASE_URL.startswith("postgresql://"):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh schema for a single test."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'scheduling_test.db'}"

    # NullPool gives every session its own connection, like separate requests
    test_engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


async def _create_user(db_session: AsyncSession, role: UserRole, name: str) -> UserInDB:
    user_data = {
        "id": uuid4(),
        "email": f"{name.lower().replace(' ', '.')}@hospital.test",
        "full_name": name,
        "role": role.value,
        "is_active": True,
    }

    await db_session.execute(insert(users).values(**user_data))
    await db_session.commit()

    return UserInDB.model_validate(user_data)


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> UserInDB:
    """Patient P1."""
    return await _create_user(db_session, UserRole.PATIENT, "Pat One")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> UserInDB:
    """Patient P2."""
    return await _create_user(db_session, UserRole.PATIENT, "Pat Two")


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> UserInDB:
    """Doctor D1."""
    return await _create_user(db_session, UserRole.DOCTOR, "Doc One")


@pytest_asyncio.fixture
async def other_doctor(db_session: AsyncSession) -> UserInDB:
    """Doctor D2."""
    return await _create_user(db_session, UserRole.DOCTOR, "Doc Two")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> UserInDB:
    """Hospital administrator."""
    return await _create_user(db_session, UserRole.ADMIN, "Ada Admin")


@pytest.fixture
def future_day() -> date:
    """A bookable date a week from today."""
    return date.today() + timedelta(days=7)


@pytest.fixture
def notifier() -> AsyncMock:
    """Stand-in for the FCM notifier."""
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def store(db_session: AsyncSession) -> AppointmentStore:
    """Appointment store on the test session."""
    return AppointmentStore(db_session)


@pytest.fixture
def service(store: AppointmentStore, notifier: AsyncMock) -> AppointmentService:
    """Appointment lifecycle on the test session."""
    return AppointmentService(store, notifier)


@pytest.fixture
def auth_headers() -> Callable[[UserInDB], dict]:
    """Build bearer headers for a user."""

    def _headers(user: UserInDB) -> dict:
        token_data = {
            "sub": str(user.id),
            "email": user.email,
        }
        token = create_access_token(data=token_data, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    notifier: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_user_service] = lambda: UserService()
    app.dependency_overrides[get_notification_service] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
