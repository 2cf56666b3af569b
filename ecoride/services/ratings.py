"""
Rating/Moderation Component
===========================

New ratings start pending (``is_approved is None``); an employee or admin
approves or rejects each one exactly once.  Moderation decides what is
*shown* (``list_for_user`` returns approved ratings only).  The ratee's
``average_rating`` / ``total_ratings`` are recomputed over every rating
they received, whatever its moderation state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ecoride.domain.entities import average_rating
from ecoride.domain.exceptions import (
    BusinessRuleViolation,
    RatingAlreadyModerated,
    RatingNotFound,
    TripNotFound,
    UserNotFound,
    ValidationError,
)
from ecoride.infrastructure.models import RatingModel, UserModel, utcnow
from ecoride.infrastructure.repositories import (
    RatingRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.users import UserService

logger = logging.getLogger(__name__)

MIN_RATING, MAX_RATING = 1, 5


@dataclass
class NewRating:
    trip_id: int
    rater_id: int
    ratee_id: int
    rating: int
    comment: Optional[str] = None


class RatingService:
    def __init__(
        self,
        ratings: RatingRepository,
        trips: TripRepository,
        users: UserRepository,
    ):
        self.ratings = ratings
        self.trips = trips
        self.users = users
        self.user_service = UserService(users)

    async def create_rating(self, data: NewRating) -> RatingModel:
        if not MIN_RATING <= data.rating <= MAX_RATING:
            raise ValidationError("Rating must be between 1 and 5")
        if data.rater_id == data.ratee_id:
            raise BusinessRuleViolation("Users cannot rate themselves")
        if await self.trips.get_by_id(data.trip_id) is None:
            raise TripNotFound()
        await self.user_service.require_active(data.rater_id)
        if await self.users.get_by_id(data.ratee_id) is None:
            raise UserNotFound("Rated user not found")

        rating = await self.ratings.create(
            RatingModel(
                trip_id=data.trip_id,
                rater_id=data.rater_id,
                ratee_id=data.ratee_id,
                rating=data.rating,
                comment=data.comment,
                is_approved=None,
            )
        )
        await self.recompute_average(data.ratee_id)
        return rating

    async def recompute_average(self, user_id: int) -> Optional[UserModel]:
        user = await self.users.get_by_id(user_id)
        if user is None:
            return None
        received = await self.ratings.get_by_ratee(user_id)
        summary = average_rating(r.rating for r in received)
        if summary is None:
            return user
        user.average_rating, user.total_ratings = summary
        return user

    async def approve_rating(self, rating_id: int, employee_id: int) -> RatingModel:
        return await self._moderate(rating_id, employee_id, approved=True)

    async def reject_rating(self, rating_id: int, employee_id: int) -> RatingModel:
        return await self._moderate(rating_id, employee_id, approved=False)

    async def list_pending(self) -> list[RatingModel]:
        return await self.ratings.get_pending()

    async def list_for_user(self, user_id: int) -> list[RatingModel]:
        return await self.ratings.get_by_ratee(user_id, approved_only=True)

    async def _moderate(
        self, rating_id: int, employee_id: int, approved: bool
    ) -> RatingModel:
        moderator = await self.user_service.require_moderator(employee_id)
        rating = await self.ratings.get_by_id(rating_id)
        if rating is None:
            raise RatingNotFound()
        if rating.is_approved is not None:
            raise RatingAlreadyModerated()

        rating.is_approved = approved
        rating.moderated_by = moderator.id
        rating.moderated_at = utcnow()
        logger.info(
            "Rating %d %s by %d",
            rating.id,
            "approved" if approved else "rejected",
            moderator.id,
        )
        return rating
