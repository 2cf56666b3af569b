"""
Trip Lifecycle Component
========================

Publishing, listing and the driver-only status transitions

    PENDING -> STARTED -> COMPLETED
    PENDING -> CANCELLED

Ownership failures raise ``NotFoundOrUnauthorized`` whether the trip is
missing or belongs to someone else, so callers cannot probe trip ids.
Completing a trip settles its confirmed bookings: they become COMPLETED
and their total is credited to the driver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from ecoride.config import settings
from ecoride.domain.entities import SeatLedger, check_transition
from ecoride.domain.enums import (
    BOOKING_TRANSITIONS,
    TRIP_TRANSITIONS,
    BookingStatus,
    TripStatus,
    UserRole,
)
from ecoride.domain.exceptions import (
    InvalidBookingTransition,
    InvalidTripTransition,
    NotFoundOrUnauthorized,
    TripNotFound,
    ValidationError,
)
from ecoride.infrastructure.models import (
    BookingModel,
    TripModel,
    UserModel,
    utcnow,
)
from ecoride.infrastructure.repositories import (
    BookingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.users import UserService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("departure_time", "arrival_time", "price_per_seat", "description")
NULLABLE_FIELDS = ("description",)


@dataclass
class NewTrip:
    departure: str
    destination: str
    departure_time: datetime
    arrival_time: datetime
    available_seats: int
    total_seats: int
    price_per_seat: Decimal
    description: Optional[str] = None


@dataclass
class Settlement:
    """What ``complete_trip`` / ``cancel_trip`` did to the trip's bookings."""

    trip: TripModel
    bookings: list[BookingModel]
    amount: Decimal = Decimal("0")


class TripService:
    def __init__(
        self,
        trips: TripRepository,
        bookings: BookingRepository,
        users: UserRepository,
    ):
        self.trips = trips
        self.bookings = bookings
        self.users = users
        self.user_service = UserService(users)

    # ── Publishing ────────────────────────────────────────────────

    async def publish_trip(self, driver_id: int, data: NewTrip) -> TripModel:
        driver = await self.user_service.require_active(driver_id)
        _validate_schedule(data.departure_time, data.arrival_time)
        SeatLedger(data.available_seats, data.total_seats)
        if data.price_per_seat < 0:
            raise ValidationError("Price per seat cannot be negative")

        if UserRole(driver.role) == UserRole.PASSENGER:
            driver.role = UserRole.DRIVER

        trip = await self.trips.create(
            TripModel(
                driver_id=driver.id,
                departure=data.departure,
                destination=data.destination,
                departure_time=data.departure_time,
                arrival_time=data.arrival_time,
                available_seats=data.available_seats,
                total_seats=data.total_seats,
                price_per_seat=data.price_per_seat,
                description=data.description,
                status=TripStatus.PENDING,
                is_active=True,
            )
        )
        logger.info(
            "Trip %d published by driver %d (%d seats)",
            trip.id,
            driver.id,
            trip.total_seats,
        )
        return trip

    async def update_trip(
        self, trip_id: int, driver_id: int, changes: dict
    ) -> TripModel:
        trip = await self._owned_trip(trip_id, driver_id)
        if TripStatus(trip.status) != TripStatus.PENDING:
            raise InvalidTripTransition(
                f"Cannot edit a trip in status {TripStatus(trip.status).value}"
            )
        # A null schedule or price means "leave unchanged".
        updates = {
            k: v
            for k, v in changes.items()
            if k in EDITABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        }
        _validate_schedule(
            updates.get("departure_time", trip.departure_time),
            updates.get("arrival_time", trip.arrival_time),
        )
        if updates.get("price_per_seat", 0) < 0:
            raise ValidationError("Price per seat cannot be negative")
        for field, value in updates.items():
            setattr(trip, field, value)
        return trip

    # ── Reads ─────────────────────────────────────────────────────

    async def get_trip(self, trip_id: int) -> tuple[TripModel, UserModel]:
        found = await self.trips.get_with_driver(trip_id)
        if found is None:
            raise TripNotFound()
        return found

    async def list_active(
        self, limit: int | None = None
    ) -> list[tuple[TripModel, UserModel]]:
        return await self.trips.get_active(limit or settings.active_trips_limit)

    async def list_for_driver(self, driver_id: int) -> list[TripModel]:
        return await self.trips.get_by_driver(driver_id)

    async def search(
        self, departure: str, destination: str, on: date | None = None
    ) -> list[tuple[TripModel, UserModel]]:
        day_start = datetime.combine(on, time.min) if on else None
        return await self.trips.search(departure.strip(), destination.strip(), day_start)

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start_trip(self, trip_id: int, driver_id: int) -> TripModel:
        trip = await self._owned_trip(trip_id, driver_id)
        check_transition(
            TripStatus(trip.status),
            TripStatus.STARTED,
            TRIP_TRANSITIONS,
            InvalidTripTransition,
        )
        trip.status = TripStatus.STARTED
        trip.started_at = utcnow()
        logger.info("Trip %d started", trip.id)
        return trip

    async def complete_trip(self, trip_id: int, driver_id: int) -> Settlement:
        trip = await self._owned_trip(trip_id, driver_id)
        check_transition(
            TripStatus(trip.status),
            TripStatus.COMPLETED,
            TRIP_TRANSITIONS,
            InvalidTripTransition,
        )
        trip.status = TripStatus.COMPLETED
        trip.completed_at = utcnow()
        trip.is_active = False

        confirmed = await self.bookings.get_by_trip(
            trip.id, {BookingStatus.CONFIRMED}
        )
        earned = Decimal("0")
        for booking in confirmed:
            check_transition(
                BookingStatus(booking.status),
                BookingStatus.COMPLETED,
                BOOKING_TRANSITIONS,
                InvalidBookingTransition,
            )
            booking.status = BookingStatus.COMPLETED
            earned += Decimal(booking.total_price)
        if earned:
            await self.users.credit(trip.driver_id, earned)

        logger.info(
            "Trip %d completed: %d booking(s) settled, %s credits to driver %d",
            trip.id,
            len(confirmed),
            earned,
            trip.driver_id,
        )
        return Settlement(trip=trip, bookings=confirmed, amount=earned)

    async def cancel_trip(self, trip_id: int, driver_id: int) -> Settlement:
        trip = await self._owned_trip(trip_id, driver_id)
        check_transition(
            TripStatus(trip.status),
            TripStatus.CANCELLED,
            TRIP_TRANSITIONS,
            InvalidTripTransition,
        )
        trip.status = TripStatus.CANCELLED
        trip.is_active = False

        open_bookings = await self.bookings.get_by_trip(
            trip.id, {BookingStatus.PENDING, BookingStatus.CONFIRMED}
        )
        refunded = Decimal("0")
        for booking in open_bookings:
            if BookingStatus(booking.status) == BookingStatus.CONFIRMED:
                await self.users.credit(booking.passenger_id, booking.total_price)
                refunded += Decimal(booking.total_price)
            booking.status = BookingStatus.CANCELLED
        logger.info(
            "Trip %d cancelled: %d booking(s) cancelled, %s credits refunded",
            trip.id,
            len(open_bookings),
            refunded,
        )
        return Settlement(trip=trip, bookings=open_bookings, amount=refunded)

    async def _owned_trip(self, trip_id: int, driver_id: int) -> TripModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None or trip.driver_id != driver_id:
            raise NotFoundOrUnauthorized("Trip not found or unauthorized")
        return trip


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _validate_schedule(departure_time: datetime, arrival_time: datetime) -> None:
    if _as_utc(arrival_time) <= _as_utc(departure_time):
        raise ValidationError("Arrival time must be after departure time")
