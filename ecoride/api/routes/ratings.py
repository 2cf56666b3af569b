"""
Rating endpoints
================

POST /api/v1/ratings                -- rate a trip participant (starts pending)
GET  /api/v1/ratings/pending        -- moderation queue
GET  /api/v1/ratings/user/{user_id} -- approved ratings received by a user
PUT  /api/v1/ratings/{id}/approve   -- employee approves
PUT  /api/v1/ratings/{id}/reject    -- employee rejects
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ecoride.api.dependencies import get_publisher, get_rating_service
from ecoride.api.middleware import limiter
from ecoride.api.schemas import ModerationRequest, RatingCreateRequest, RatingResponse
from ecoride.config import settings
from ecoride.infrastructure.events import EventPublisher, build_event
from ecoride.infrastructure.models import RatingModel
from ecoride.services.ratings import NewRating, RatingService

router = APIRouter(prefix="/ratings", tags=["ratings"])


def _moderation_event(rating: RatingModel) -> dict:
    return build_event(
        "rating_approved" if rating.is_approved else "rating_rejected",
        user_ids=[rating.ratee_id],
        data={"rating_id": rating.id, "rating": rating.rating},
    )


@router.post(
    "",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate a trip participant",
)
@limiter.limit(settings.rate_limit)
async def create_rating(
    request: Request,
    body: RatingCreateRequest,
    service: RatingService = Depends(get_rating_service),
):
    return await service.create_rating(NewRating(**body.model_dump()))


@router.get(
    "/pending",
    response_model=list[RatingResponse],
    summary="Ratings awaiting moderation",
)
@limiter.limit(settings.rate_limit)
async def list_pending(
    request: Request,
    service: RatingService = Depends(get_rating_service),
):
    return await service.list_pending()


@router.get(
    "/user/{user_id}",
    response_model=list[RatingResponse],
    summary="Approved ratings received by a user",
)
@limiter.limit(settings.rate_limit)
async def list_user_ratings(
    request: Request,
    user_id: int,
    service: RatingService = Depends(get_rating_service),
):
    return await service.list_for_user(user_id)


@router.put(
    "/{rating_id}/approve",
    response_model=RatingResponse,
    summary="Approve a pending rating",
)
@limiter.limit(settings.rate_limit)
async def approve_rating(
    request: Request,
    rating_id: int,
    body: ModerationRequest,
    background_tasks: BackgroundTasks,
    service: RatingService = Depends(get_rating_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    rating = await service.approve_rating(rating_id, body.employee_id)
    background_tasks.add_task(publisher.publish, _moderation_event(rating))
    return rating


@router.put(
    "/{rating_id}/reject",
    response_model=RatingResponse,
    summary="Reject a pending rating",
)
@limiter.limit(settings.rate_limit)
async def reject_rating(
    request: Request,
    rating_id: int,
    body: ModerationRequest,
    background_tasks: BackgroundTasks,
    service: RatingService = Depends(get_rating_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    rating = await service.reject_rating(rating_id, body.employee_id)
    background_tasks.add_task(publisher.publish, _moderation_event(rating))
    return rating
