"""FastAPI dependency injection helpers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ecoride.config import settings
from ecoride.infrastructure.database import async_session_factory
from ecoride.infrastructure.events import EventPublisher
from ecoride.infrastructure.redis_client import get_redis
from ecoride.infrastructure.repositories import (
    BookingRepository,
    RatingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.bookings import BookingService
from ecoride.services.ratings import RatingService
from ecoride.services.trips import TripService
from ecoride.services.users import UserService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_publisher() -> EventPublisher:
    return EventPublisher(await get_redis(), settings.events_channel)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(UserRepository(db))


def get_trip_service(db: AsyncSession = Depends(get_db)) -> TripService:
    return TripService(TripRepository(db), BookingRepository(db), UserRepository(db))


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(
        TripRepository(db), BookingRepository(db), UserRepository(db)
    )


def get_rating_service(db: AsyncSession = Depends(get_db)) -> RatingService:
    return RatingService(RatingRepository(db), TripRepository(db), UserRepository(db))
