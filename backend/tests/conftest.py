"""
Pytest fixtures for the test database, HTTP client and collaborators.

Tests run against in-memory SQLite (aiosqlite). The partial unique index on
completed bookings is created there too, so redemption conflicts behave as
they do on PostgreSQL. External collaborators are replaced by the recording
fakes in fakes.py.
"""

import os
from decimal import Decimal

# Settings are read once and cached; configure before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DATABASE_URL_SYNC"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["ENVIRONMENT"] = "test"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ticketing.main import app
from ticketing.api.deps import collaborators
from ticketing.core.config import get_settings
from ticketing.db.base import Base, utcnow
from ticketing.db.session import get_db
from ticketing.models.booking import Booking, COMPLETED, PENDING
from ticketing.services import booking_store
from ticketing.services.collaborators import Collaborators, build_collaborators
from ticketing.services.interfaces import RosterEntry, StaticRoster

from fakes import FakeGateway, RecordingMirror, RecordingNotifier

TEST_DATABASE_URL = "sqlite+aiosqlite://"

ROSTER = [
    RosterEntry(code="G1-A-1", group="Group 1", name="Asha"),
    RosterEntry(code="G1-A-2", group="Group 1", name="Ravi"),
    RosterEntry(code="G2-B-1", group="Group 2", name="Meera"),
]

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest.fixture
def settings():
    return get_settings()

@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()

@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()

@pytest.fixture
def mirror() -> RecordingMirror:
    return RecordingMirror()

@pytest.fixture
def deps(settings, gateway, notifier, mirror) -> Collaborators:
    return build_collaborators(
        settings,
        gateway=gateway,
        notifier=notifier,
        mirror=mirror,
        roster=StaticRoster(entries=ROSTER),
        use_cache=False,
    )

@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, deps: Collaborators) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session and collaborators overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[collaborators] = lambda: deps

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

@pytest.fixture
def admin_headers(settings) -> dict:
    return {"X-Admin-Secret": settings.ADMIN_SECRET}

@pytest.fixture
def make_booking(db_session: AsyncSession, settings):
    """Factory for bookings; status=COMPLETED runs the real pending -> completed transition."""

    async def _make(code: str = "G1-A-1", status: str = PENDING, **overrides) -> Booking:
        fields = dict(
            invite_code=code,
            customer_name="Asha Rao",
            customer_email="asha@example.com",
            customer_phone="9876543210",
            ticket_type="ultimate",
            ticket_count=1,
            total_amount=Decimal("1737.06"),
            event_name="Slanup's BYOB Diwali Party 2025",
            event_date=utcnow(),
            reference_prefix="DIW",
            pending_ttl_minutes=settings.PENDING_BOOKING_TTL_MINUTES,
        )
        fields.update(overrides)
        booking = await booking_store.create_booking(db_session, **fields)
        if status != PENDING:
            result = await booking_store.update_payment_status(db_session, booking.order_id, status)
            booking = result.booking
        return booking

    return _make

@pytest.fixture
def completed_booking(make_booking):
    async def _make(code: str = "G1-A-1", **overrides) -> Booking:
        return await make_booking(code, status=COMPLETED, **overrides)

    return _make
