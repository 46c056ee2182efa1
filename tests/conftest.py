import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from maint_reminders.main import app
from maint_reminders.database import Base, get_db, get_session_factory
from maint_reminders.api.deps import get_config, get_transport
from maint_reminders.services.business_calendar import BusinessCalendar
from maint_reminders.services.interval_classifier import IntervalClassifier, IntervalTier
from maint_reminders.services.reminder_service import ReminderConfig
from maint_reminders.services.twilio_service import MockTwilioService

TEST_TIERS = [
    IntervalTier(threshold_days=90, interval_days=180, label="low"),
    IntervalTier(threshold_days=30, interval_days=90, label="medium"),
    IntervalTier(threshold_days=0, interval_days=30, label="high"),
]
TEST_HOLIDAYS = {(5, 25), (12, 25)}


@pytest.fixture
def reminder_config() -> ReminderConfig:
    """Classifier and calendar with fixed tiers and a small holiday set."""
    return ReminderConfig(
        classifier=IntervalClassifier(TEST_TIERS),
        calendar=BusinessCalendar(TEST_HOLIDAYS),
    )


@pytest.fixture
def mock_transport() -> MockTwilioService:
    return MockTwilioService()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Create test database and tables; yields a session factory."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_maker):
    """A session on the test database."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, session_maker, reminder_config, mock_transport):
    """Create test client with overridden database, config and transport."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_maker
    app.dependency_overrides[get_config] = lambda: reminder_config
    app.dependency_overrides[get_transport] = lambda: mock_transport

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
