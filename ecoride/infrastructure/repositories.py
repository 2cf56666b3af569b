"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Counters shared between requests
(``trips.available_seats``, ``users.credits``) are only ever changed through
conditional UPDATEs so two requests cannot both pass the same check.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, RatingModel, TripModel, UserModel
from ecoride.domain.enums import BookingStatus, TripStatus


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_external_id(self, external_id: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> list[UserModel]:
        result = await self.session.execute(select(UserModel).order_by(UserModel.id))
        return list(result.scalars().all())

    async def debit(self, user_id: int, amount: Decimal) -> bool:
        """Subtract *amount* only if the balance covers it."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.credits >= amount)
            .values(credits=UserModel.credits - amount)
            .execution_options(synchronize_session=False)
        )
        await self._refresh(user_id)
        return result.rowcount == 1

    async def credit(self, user_id: int, amount: Decimal) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(credits=UserModel.credits + amount)
            .execution_options(synchronize_session=False)
        )
        await self._refresh(user_id)

    async def _refresh(self, user_id: int) -> None:
        await self.session.get(UserModel, user_id, populate_existing=True)


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripModel) -> TripModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: int) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def get_with_driver(
        self, trip_id: int
    ) -> Optional[tuple[TripModel, UserModel]]:
        result = await self.session.execute(
            select(TripModel, UserModel)
            .join(UserModel, UserModel.id == TripModel.driver_id)
            .where(TripModel.id == trip_id)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def get_by_driver(self, driver_id: int) -> list[TripModel]:
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.driver_id == driver_id)
            .order_by(TripModel.departure_time)
        )
        return list(result.scalars().all())

    def _open_trips(self):
        return (
            select(TripModel, UserModel)
            .join(UserModel, UserModel.id == TripModel.driver_id)
            .where(
                TripModel.is_active.is_(True),
                TripModel.status == TripStatus.PENDING,
                TripModel.available_seats > 0,
            )
            .order_by(TripModel.departure_time)
        )

    async def get_active(self, limit: int) -> list[tuple[TripModel, UserModel]]:
        result = await self.session.execute(self._open_trips().limit(limit))
        return [(trip, driver) for trip, driver in result.all()]

    async def search(
        self,
        departure: str,
        destination: str,
        day_start: datetime | None = None,
    ) -> list[tuple[TripModel, UserModel]]:
        """Case-insensitive substring match on both places, optional day."""
        query = self._open_trips().where(
            TripModel.departure.ilike(f"%{departure}%"),
            TripModel.destination.ilike(f"%{destination}%"),
        )
        if day_start is not None:
            query = query.where(
                TripModel.departure_time >= day_start,
                TripModel.departure_time < day_start + timedelta(days=1),
            )
        result = await self.session.execute(query)
        return [(trip, driver) for trip, driver in result.all()]

    async def reserve_seats(self, trip_id: int, seats: int) -> bool:
        """Atomically decrement ``available_seats`` if enough remain.

        Returns False (nothing changed) when a concurrent booking got
        there first.
        """
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.available_seats >= seats,
            )
            .values(available_seats=TripModel.available_seats - seats)
            .execution_options(synchronize_session=False)
        )
        await self._refresh(trip_id)
        return result.rowcount == 1

    async def release_seats(self, trip_id: int, seats: int) -> bool:
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.available_seats + seats <= TripModel.total_seats,
            )
            .values(available_seats=TripModel.available_seats + seats)
            .execution_options(synchronize_session=False)
        )
        await self._refresh(trip_id)
        return result.rowcount == 1

    async def _refresh(self, trip_id: int) -> None:
        await self.session.get(TripModel, trip_id, populate_existing=True)


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_by_trip(
        self, trip_id: int, statuses: set[BookingStatus] | None = None
    ) -> list[BookingModel]:
        query = select(BookingModel).where(BookingModel.trip_id == trip_id)
        if statuses:
            query = query.where(BookingModel.status.in_(statuses))
        result = await self.session.execute(query.order_by(BookingModel.id))
        return list(result.scalars().all())

    async def get_by_passenger(
        self, passenger_id: int
    ) -> list[tuple[BookingModel, TripModel, UserModel]]:
        """Bookings with their trip and the trip's driver."""
        result = await self.session.execute(
            select(BookingModel, TripModel, UserModel)
            .join(TripModel, TripModel.id == BookingModel.trip_id)
            .join(UserModel, UserModel.id == TripModel.driver_id)
            .where(BookingModel.passenger_id == passenger_id)
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
        )
        return [(b, t, d) for b, t, d in result.all()]


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def get_by_id(self, rating_id: int) -> Optional[RatingModel]:
        return await self.session.get(RatingModel, rating_id)

    async def get_by_ratee(
        self, ratee_id: int, approved_only: bool = False
    ) -> list[RatingModel]:
        query = select(RatingModel).where(RatingModel.ratee_id == ratee_id)
        if approved_only:
            query = query.where(RatingModel.is_approved.is_(True))
        result = await self.session.execute(query.order_by(RatingModel.id))
        return list(result.scalars().all())

    async def get_pending(self) -> list[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(RatingModel.is_approved.is_(None))
            .order_by(RatingModel.created_at, RatingModel.id)
        )
        return list(result.scalars().all())
