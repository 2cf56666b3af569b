"""Tests for ratings, the ratee's running average and moderation."""

from decimal import Decimal

import pytest

from ecoride.domain.enums import TripStatus, UserRole
from ecoride.domain.exceptions import (
    BusinessRuleViolation,
    Forbidden,
    RatingAlreadyModerated,
    RatingNotFound,
    TripNotFound,
    UserNotFound,
    UserSuspended,
    ValidationError,
)
from ecoride.infrastructure.repositories import (
    RatingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.ratings import NewRating, RatingService
from tests.conftest import add_trip, add_user


def _service(session) -> RatingService:
    return RatingService(
        RatingRepository(session), TripRepository(session), UserRepository(session)
    )


@pytest.fixture
def completed_trip():
    async def build(session):
        driver = await add_user(session, role=UserRole.DRIVER)
        trip = await add_trip(session, driver.id, status=TripStatus.COMPLETED)
        return driver, trip

    return build


class TestCreateRating:
    @pytest.mark.asyncio
    async def test_average_over_four_ratings(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        service = _service(db_session)

        for score in (5, 5, 5, 1):
            rater = await add_user(db_session)
            await service.create_rating(NewRating(trip.id, rater.id, driver.id, score))

        assert driver.average_rating == Decimal("4.00")
        assert driver.total_ratings == 4

    @pytest.mark.asyncio
    async def test_new_rating_is_pending(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        rating = await _service(db_session).create_rating(
            NewRating(trip.id, rater.id, driver.id, 4, comment="Ponctuel")
        )
        assert rating.is_approved is None
        assert rating.moderated_by is None
        assert rating.comment == "Ponctuel"

    @pytest.mark.asyncio
    async def test_out_of_range(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        with pytest.raises(ValidationError):
            await _service(db_session).create_rating(
                NewRating(trip.id, rater.id, driver.id, 6)
            )

    @pytest.mark.asyncio
    async def test_cannot_rate_yourself(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        with pytest.raises(BusinessRuleViolation):
            await _service(db_session).create_rating(
                NewRating(trip.id, driver.id, driver.id, 5)
            )

    @pytest.mark.asyncio
    async def test_unknown_trip(self, db_session):
        rater = await add_user(db_session)
        ratee = await add_user(db_session)
        with pytest.raises(TripNotFound):
            await _service(db_session).create_rating(
                NewRating(9999, rater.id, ratee.id, 5)
            )

    @pytest.mark.asyncio
    async def test_unknown_ratee(self, db_session, completed_trip):
        _, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        with pytest.raises(UserNotFound):
            await _service(db_session).create_rating(
                NewRating(trip.id, rater.id, 9999, 5)
            )

    @pytest.mark.asyncio
    async def test_suspended_rater(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session, is_suspended=True)
        with pytest.raises(UserSuspended):
            await _service(db_session).create_rating(
                NewRating(trip.id, rater.id, driver.id, 1)
            )
        assert driver.total_ratings == 0


class TestModeration:
    @pytest.mark.asyncio
    async def test_approval_makes_rating_visible(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        employee = await add_user(db_session, role=UserRole.EMPLOYEE)
        service = _service(db_session)
        rating = await service.create_rating(NewRating(trip.id, rater.id, driver.id, 5))

        assert await service.list_for_user(driver.id) == []
        assert [r.id for r in await service.list_pending()] == [rating.id]

        approved = await service.approve_rating(rating.id, employee.id)

        assert approved.is_approved is True
        assert approved.moderated_by == employee.id
        assert approved.moderated_at is not None
        assert [r.id for r in await service.list_for_user(driver.id)] == [rating.id]
        assert await service.list_pending() == []

    @pytest.mark.asyncio
    async def test_rejected_rating_stays_hidden_but_counts(
        self, db_session, completed_trip
    ):
        driver, trip = await completed_trip(db_session)
        admin = await add_user(db_session, role=UserRole.ADMIN)
        service = _service(db_session)
        kept = await service.create_rating(
            NewRating(trip.id, (await add_user(db_session)).id, driver.id, 5)
        )
        dropped = await service.create_rating(
            NewRating(trip.id, (await add_user(db_session)).id, driver.id, 2)
        )

        await service.approve_rating(kept.id, admin.id)
        await service.reject_rating(dropped.id, admin.id)

        assert dropped.is_approved is False
        assert [r.id for r in await service.list_for_user(driver.id)] == [kept.id]
        assert driver.average_rating == Decimal("3.50")
        assert driver.total_ratings == 2

    @pytest.mark.asyncio
    async def test_moderation_happens_once(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        employee = await add_user(db_session, role=UserRole.EMPLOYEE)
        service = _service(db_session)
        rating = await service.create_rating(NewRating(trip.id, rater.id, driver.id, 3))
        await service.approve_rating(rating.id, employee.id)

        with pytest.raises(RatingAlreadyModerated):
            await service.reject_rating(rating.id, employee.id)
        assert rating.is_approved is True

    @pytest.mark.asyncio
    async def test_passenger_cannot_moderate(self, db_session, completed_trip):
        driver, trip = await completed_trip(db_session)
        rater = await add_user(db_session)
        service = _service(db_session)
        rating = await service.create_rating(NewRating(trip.id, rater.id, driver.id, 3))

        with pytest.raises(Forbidden):
            await service.approve_rating(rating.id, rater.id)
        assert rating.is_approved is None

    @pytest.mark.asyncio
    async def test_unknown_rating(self, db_session):
        employee = await add_user(db_session, role=UserRole.EMPLOYEE)
        with pytest.raises(RatingNotFound):
            await _service(db_session).approve_rating(9999, employee.id)
