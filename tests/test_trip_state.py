"""Tests for publishing trips and the driver-only lifecycle transitions."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ecoride.domain.enums import BookingStatus, TripStatus, UserRole
from ecoride.domain.exceptions import (
    InvalidTripTransition,
    NotFoundOrUnauthorized,
    TripNotFound,
    UserSuspended,
    ValidationError,
)
from ecoride.infrastructure.repositories import (
    BookingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.bookings import BookingService, NewBooking
from ecoride.services.trips import NewTrip, TripService
from tests.conftest import DEPARTURE, add_trip, add_user


def _trips(session) -> TripService:
    return TripService(
        TripRepository(session), BookingRepository(session), UserRepository(session)
    )


def _bookings(session) -> BookingService:
    return BookingService(
        TripRepository(session), BookingRepository(session), UserRepository(session)
    )


def _new_trip(**overrides) -> NewTrip:
    values = {
        "departure": "Paris",
        "destination": "Lyon",
        "departure_time": DEPARTURE,
        "arrival_time": DEPARTURE + timedelta(hours=5),
        "available_seats": 4,
        "total_seats": 4,
        "price_per_seat": Decimal("25.00"),
    }
    values.update(overrides)
    return NewTrip(**values)


class TestPublishTrip:
    @pytest.mark.asyncio
    async def test_publish_promotes_passenger_to_driver(self, db_session):
        member = await add_user(db_session)
        trip = await _trips(db_session).publish_trip(member.id, _new_trip())
        assert trip.status == TripStatus.PENDING
        assert trip.is_active is True
        assert trip.driver_id == member.id
        assert member.role == UserRole.DRIVER

    @pytest.mark.asyncio
    async def test_arrival_must_follow_departure(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        with pytest.raises(ValidationError):
            await _trips(db_session).publish_trip(
                driver.id, _new_trip(arrival_time=DEPARTURE)
            )

    @pytest.mark.asyncio
    async def test_available_cannot_exceed_total(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        with pytest.raises(ValidationError):
            await _trips(db_session).publish_trip(
                driver.id, _new_trip(available_seats=5, total_seats=4)
            )

    @pytest.mark.asyncio
    async def test_suspended_driver_cannot_publish(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER, is_suspended=True)
        with pytest.raises(UserSuspended):
            await _trips(db_session).publish_trip(driver.id, _new_trip())

    @pytest.mark.asyncio
    async def test_edit_pending_trip(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id)
        updated = await _trips(db_session).update_trip(
            trip.id,
            driver.id,
            {"price_per_seat": Decimal("7.50"), "available_seats": 99},
        )
        assert updated.price_per_seat == Decimal("7.50")
        assert updated.available_seats == 3

    @pytest.mark.asyncio
    async def test_null_schedule_and_price_leave_trip_unchanged(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id, description="Quiet car")
        updated = await _trips(db_session).update_trip(
            trip.id,
            driver.id,
            {
                "departure_time": None,
                "arrival_time": None,
                "price_per_seat": None,
                "description": None,
            },
        )
        assert updated.departure_time == DEPARTURE
        assert updated.arrival_time == DEPARTURE + timedelta(hours=5)
        assert updated.price_per_seat == Decimal("5.00")
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_started_trip_cannot_be_edited(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id, status=TripStatus.STARTED)
        with pytest.raises(InvalidTripTransition):
            await _trips(db_session).update_trip(
                trip.id, driver.id, {"description": "late"}
            )


class TestListing:
    @pytest.mark.asyncio
    async def test_active_listing_skips_full_and_closed_trips(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        later = await add_trip(
            db_session, driver.id, departure_time=DEPARTURE + timedelta(days=1),
            arrival_time=DEPARTURE + timedelta(days=1, hours=2),
        )
        sooner = await add_trip(db_session, driver.id)
        await add_trip(db_session, driver.id, available_seats=0)
        await add_trip(db_session, driver.id, status=TripStatus.STARTED)
        await add_trip(db_session, driver.id, is_active=False)

        listed = await _trips(db_session).list_active()

        assert [t.id for t, _ in listed] == [sooner.id, later.id]
        assert all(d.id == driver.id for _, d in listed)

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_filters_day(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        match = await add_trip(db_session, driver.id, departure="Paris Gare de Lyon")
        await add_trip(db_session, driver.id, destination="Marseille")
        await add_trip(
            db_session,
            driver.id,
            departure_time=DEPARTURE + timedelta(days=2),
            arrival_time=DEPARTURE + timedelta(days=2, hours=5),
        )
        service = _trips(db_session)

        found = await service.search(" paris ", "LYON", date(2030, 5, 1))
        assert [t.id for t, _ in found] == [match.id]

        assert len(await service.search("paris", "lyon")) == 2
        assert await service.search("paris", "lyon", date(2030, 5, 2)) == []

    @pytest.mark.asyncio
    async def test_get_trip_not_found(self, db_session):
        with pytest.raises(TripNotFound):
            await _trips(db_session).get_trip(9999)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_owner_starts_and_completes(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id)
        service = _trips(db_session)

        started = await service.start_trip(trip.id, driver.id)
        assert started.status == TripStatus.STARTED
        assert started.started_at is not None
        assert started.completed_at is None

        settlement = await service.complete_trip(trip.id, driver.id)
        assert settlement.trip.status == TripStatus.COMPLETED
        assert settlement.trip.started_at is not None
        assert settlement.trip.completed_at is not None
        assert settlement.trip.is_active is False

    @pytest.mark.asyncio
    async def test_non_owner_cannot_start(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        stranger = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id)

        with pytest.raises(NotFoundOrUnauthorized):
            await _trips(db_session).start_trip(trip.id, stranger.id)

        await db_session.refresh(trip)
        assert trip.status == TripStatus.PENDING
        assert trip.started_at is None

    @pytest.mark.asyncio
    async def test_non_owner_cannot_complete(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        stranger = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id, status=TripStatus.STARTED)

        with pytest.raises(NotFoundOrUnauthorized):
            await _trips(db_session).complete_trip(trip.id, stranger.id)

        await db_session.refresh(trip)
        assert trip.status == TripStatus.STARTED
        assert trip.completed_at is None

    @pytest.mark.asyncio
    async def test_missing_trip_reads_as_unauthorized(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        with pytest.raises(NotFoundOrUnauthorized):
            await _trips(db_session).start_trip(9999, driver.id)

    @pytest.mark.asyncio
    async def test_cannot_complete_pending_trip(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id)
        with pytest.raises(InvalidTripTransition):
            await _trips(db_session).complete_trip(trip.id, driver.id)
        assert trip.status == TripStatus.PENDING

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id)
        service = _trips(db_session)
        await service.start_trip(trip.id, driver.id)
        with pytest.raises(InvalidTripTransition):
            await service.start_trip(trip.id, driver.id)

    @pytest.mark.asyncio
    async def test_completion_pays_driver_for_confirmed_bookings(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        payer = await add_user(db_session)
        non_payer = await add_user(db_session)
        trip = await add_trip(db_session, driver.id)
        bookings = _bookings(db_session)

        paid = await bookings.create_booking(NewBooking(trip.id, payer.id, 2))
        await bookings.pay_booking(paid.id, payer.id)
        unpaid = await bookings.create_booking(NewBooking(trip.id, non_payer.id, 1))

        service = _trips(db_session)
        await service.start_trip(trip.id, driver.id)
        settlement = await service.complete_trip(trip.id, driver.id)

        assert settlement.amount == Decimal("10.00")
        assert [b.id for b in settlement.bookings] == [paid.id]
        assert paid.status == BookingStatus.COMPLETED
        assert unpaid.status == BookingStatus.PENDING
        assert driver.credits == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_cancel_refunds_confirmed_bookings(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        payer = await add_user(db_session)
        other = await add_user(db_session)
        trip = await add_trip(db_session, driver.id)
        bookings = _bookings(db_session)

        paid = await bookings.create_booking(NewBooking(trip.id, payer.id, 2))
        await bookings.pay_booking(paid.id, payer.id)
        pending = await bookings.create_booking(NewBooking(trip.id, other.id, 1))
        assert payer.credits == Decimal("10.00")

        settlement = await _trips(db_session).cancel_trip(trip.id, driver.id)

        assert settlement.trip.status == TripStatus.CANCELLED
        assert settlement.trip.is_active is False
        assert settlement.amount == Decimal("10.00")
        assert paid.status == BookingStatus.CANCELLED
        assert pending.status == BookingStatus.CANCELLED
        assert payer.credits == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_started_trip_cannot_be_cancelled(self, db_session):
        driver = await add_user(db_session, role=UserRole.DRIVER)
        trip = await add_trip(db_session, driver.id, status=TripStatus.STARTED)
        with pytest.raises(InvalidTripTransition):
            await _trips(db_session).cancel_trip(trip.id, driver.id)
