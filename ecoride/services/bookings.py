"""
Booking Component
=================

Seat accounting
---------------
``create_booking`` checks the trip it has read, then reserves the seats
with a single conditional UPDATE (``available_seats >= n``).  When two
requests race for the last seats both may pass the first check, but only
one UPDATE matches; the loser gets ``InsufficientSeats`` and its unit of
work is rolled back, so no booking row is left behind.

Credits
-------
``pay_booking`` debits the passenger with the same conditional-UPDATE
technique and confirms the booking.  A failed payment leaves the booking
PENDING and its seats reserved.  ``cancel_booking`` gives the seats back
and refunds a confirmed booking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ecoride.domain.entities import SeatLedger, check_transition
from ecoride.domain.enums import BOOKING_TRANSITIONS, BookingStatus, TripStatus
from ecoride.domain.exceptions import (
    BusinessRuleViolation,
    InsufficientCredits,
    InsufficientSeats,
    InvalidBookingTransition,
    NotFoundOrUnauthorized,
    TripNotFound,
    TripUnavailable,
    ValidationError,
)
from ecoride.domain.pricing import booking_total
from ecoride.infrastructure.models import BookingModel, TripModel, UserModel
from ecoride.infrastructure.repositories import (
    BookingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.users import UserService

logger = logging.getLogger(__name__)


@dataclass
class NewBooking:
    trip_id: int
    passenger_id: int
    seats_booked: int
    total_price: Optional[Decimal] = None
    message: Optional[str] = None


class BookingService:
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

    async def create_booking(self, data: NewBooking) -> BookingModel:
        if data.seats_booked < 1:
            raise ValidationError("At least one seat must be booked")

        trip = await self.trips.get_by_id(data.trip_id)
        if trip is None:
            raise TripNotFound()
        if not trip.is_active or TripStatus(trip.status) != TripStatus.PENDING:
            raise TripUnavailable()

        passenger = await self.user_service.require_active(data.passenger_id)
        if passenger.id == trip.driver_id:
            raise BusinessRuleViolation("Drivers cannot book their own trip")

        ledger = SeatLedger(trip.available_seats, trip.total_seats)
        if not ledger.can_book(data.seats_booked):
            raise InsufficientSeats()

        total = booking_total(trip.price_per_seat, data.seats_booked, data.total_price)

        if not await self.trips.reserve_seats(trip.id, data.seats_booked):
            logger.warning(
                "Lost seat race on trip %d (%d seat(s) requested)",
                trip.id,
                data.seats_booked,
            )
            raise InsufficientSeats()

        booking = await self.bookings.create(
            BookingModel(
                trip_id=trip.id,
                passenger_id=passenger.id,
                seats_booked=data.seats_booked,
                total_price=total,
                status=BookingStatus.PENDING,
                message=data.message,
            )
        )
        logger.info(
            "Booking %d: passenger %d took %d seat(s) on trip %d, %d left",
            booking.id,
            passenger.id,
            data.seats_booked,
            trip.id,
            trip.available_seats,
        )
        return booking

    async def pay_booking(self, booking_id: int, passenger_id: int) -> BookingModel:
        booking = await self._owned_booking(booking_id, passenger_id)
        check_transition(
            BookingStatus(booking.status),
            BookingStatus.CONFIRMED,
            BOOKING_TRANSITIONS,
            InvalidBookingTransition,
        )
        await self.user_service.require_active(passenger_id)

        amount = Decimal(booking.total_price)
        if not await self.users.debit(passenger_id, amount):
            raise InsufficientCredits()

        booking.status = BookingStatus.CONFIRMED
        logger.info(
            "Booking %d paid: %s credits from passenger %d",
            booking.id,
            amount,
            passenger_id,
        )
        return booking

    async def cancel_booking(
        self, booking_id: int, passenger_id: int
    ) -> BookingModel:
        booking = await self._owned_booking(booking_id, passenger_id)
        previous = BookingStatus(booking.status)
        check_transition(
            previous,
            BookingStatus.CANCELLED,
            BOOKING_TRANSITIONS,
            InvalidBookingTransition,
        )
        trip = await self.trips.get_by_id(booking.trip_id)
        if trip is not None and TripStatus(trip.status) != TripStatus.PENDING:
            raise TripUnavailable("Trip has already left; booking cannot be cancelled")

        if not await self.trips.release_seats(booking.trip_id, booking.seats_booked):
            logger.warning(
                "Trip %d already at capacity; seats of booking %d not returned",
                booking.trip_id,
                booking.id,
            )
        if previous == BookingStatus.CONFIRMED:
            await self.users.credit(passenger_id, booking.total_price)

        booking.status = BookingStatus.CANCELLED
        logger.info("Booking %d cancelled (was %s)", booking.id, previous.value)
        return booking

    # ── Reads ─────────────────────────────────────────────────────

    async def list_for_passenger(
        self, passenger_id: int
    ) -> list[tuple[BookingModel, TripModel, UserModel]]:
        return await self.bookings.get_by_passenger(passenger_id)

    async def list_for_trip(self, trip_id: int) -> list[BookingModel]:
        return await self.bookings.get_by_trip(trip_id)

    async def _owned_booking(
        self, booking_id: int, passenger_id: int
    ) -> BookingModel:
        booking = await self.bookings.get_by_id(booking_id)
        if booking is None or booking.passenger_id != passenger_id:
            raise NotFoundOrUnauthorized("Booking not found or unauthorized")
        return booking
