"""
Shared test fixtures.

Uses a file-backed SQLite database (via aiosqlite) per test so tests run
without Docker / PostgreSQL / Redis.  The production metadata is created
as-is; two sessions on the same file can interleave, which the seat race
tests rely on.  Event publishing is replaced by ``RecordingPublisher``.
"""

import itertools
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ecoride.domain.enums import TripStatus, UserRole
from ecoride.infrastructure.database import Base
from ecoride.infrastructure.models import TripModel, UserModel

DEPARTURE = datetime(2030, 5, 1, 8, 0)

_seq = itertools.count(1)


class RecordingPublisher:
    """Stands in for ``EventPublisher``; keeps every event in order."""

    def __init__(self):
        self.events: list[dict] = []

    async def publish(self, event: dict) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]


# ── Builders ──────────────────────────────────────────────────────────


async def add_user(session: AsyncSession, **fields) -> UserModel:
    n = next(_seq)
    values = {
        "external_id": f"sub-{n}",
        "email": f"user{n}@example.com",
        "first_name": "Test",
        "last_name": f"User{n}",
        "role": UserRole.PASSENGER,
        "credits": Decimal("20.00"),
    }
    values.update(fields)
    user = UserModel(**values)
    session.add(user)
    await session.flush()
    return user


async def add_trip(session: AsyncSession, driver_id: int, **fields) -> TripModel:
    values = {
        "driver_id": driver_id,
        "departure": "Paris",
        "destination": "Lyon",
        "departure_time": DEPARTURE,
        "arrival_time": DEPARTURE + timedelta(hours=5),
        "available_seats": 3,
        "total_seats": 3,
        "price_per_seat": Decimal("5.00"),
        "status": TripStatus.PENDING,
        "is_active": True,
    }
    values.update(fields)
    trip = TripModel(**values)
    session.add(trip)
    await session.flush()
    return trip


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, dispose afterwards."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ecoride.db'}", echo=False
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest_asyncio.fixture
async def client(session_factory, publisher) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite; notifier patched out, rate limits reset."""
    with (
        patch("ecoride.workers.notifier.start_notifier", new_callable=AsyncMock),
        patch("ecoride.workers.notifier.stop_notifier", new_callable=AsyncMock),
    ):

        async def _test_db():
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        from ecoride.api.app import create_app
        from ecoride.api.dependencies import get_db, get_publisher
        from ecoride.api.middleware import limiter

        app = create_app()
        app.dependency_overrides[get_db] = _test_db
        app.dependency_overrides[get_publisher] = lambda: publisher
        limiter.reset()

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
