"""
Trip endpoints
==============

POST /api/v1/trips                      -- publish a trip (201)
GET  /api/v1/trips                      -- open trips for the homepage
POST /api/v1/trips/search               -- search by departure / destination / date
GET  /api/v1/trips/driver/{driver_id}   -- a driver's trips
GET  /api/v1/trips/{trip_id}            -- trip with driver summary
PUT  /api/v1/trips/{trip_id}            -- edit a pending trip
PUT  /api/v1/trips/{trip_id}/start      -- PENDING -> STARTED
PUT  /api/v1/trips/{trip_id}/complete   -- STARTED -> COMPLETED (settles bookings)
PUT  /api/v1/trips/{trip_id}/cancel     -- PENDING -> CANCELLED (refunds bookings)
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ecoride.api.dependencies import get_publisher, get_trip_service
from ecoride.api.middleware import limiter
from ecoride.api.schemas import (
    DriverActionRequest,
    DriverSummary,
    TripCreateRequest,
    TripResponse,
    TripSearchRequest,
    TripUpdateRequest,
    TripWithDriverResponse,
)
from ecoride.config import settings
from ecoride.infrastructure.events import EventPublisher, build_event
from ecoride.infrastructure.models import TripModel, UserModel
from ecoride.services.trips import NewTrip, Settlement, TripService

router = APIRouter(prefix="/trips", tags=["trips"])


def with_driver(trip: TripModel, driver: UserModel) -> TripWithDriverResponse:
    return TripWithDriverResponse(
        **TripResponse.model_validate(trip).model_dump(),
        driver=DriverSummary.model_validate(driver),
    )


def _settlement_event(event_type: str, settlement: Settlement) -> dict:
    trip = settlement.trip
    return build_event(
        event_type,
        user_ids=[trip.driver_id, *(b.passenger_id for b in settlement.bookings)],
        trip_id=trip.id,
        data={
            "status": trip.status.value,
            "bookings": len(settlement.bookings),
            "amount": str(settlement.amount),
        },
    )


@router.post(
    "",
    status_code=201,
    response_model=TripResponse,
    summary="Publish a trip",
)
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    service: TripService = Depends(get_trip_service),
):
    data = NewTrip(**body.model_dump(exclude={"driver_id"}))
    return await service.publish_trip(body.driver_id, data)


@router.get(
    "",
    response_model=list[TripWithDriverResponse],
    summary="List open trips, soonest first",
)
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    service: TripService = Depends(get_trip_service),
):
    return [with_driver(t, d) for t, d in await service.list_active()]


@router.post(
    "/search",
    response_model=list[TripWithDriverResponse],
    summary="Search open trips",
)
@limiter.limit(settings.rate_limit)
async def search_trips(
    request: Request,
    body: TripSearchRequest,
    service: TripService = Depends(get_trip_service),
):
    found = await service.search(body.departure, body.destination, body.day)
    return [with_driver(t, d) for t, d in found]


@router.get(
    "/driver/{driver_id}",
    response_model=list[TripResponse],
    summary="List a driver's trips",
)
@limiter.limit(settings.rate_limit)
async def list_driver_trips(
    request: Request,
    driver_id: int,
    service: TripService = Depends(get_trip_service),
):
    return await service.list_for_driver(driver_id)


@router.get(
    "/{trip_id}",
    response_model=TripWithDriverResponse,
    summary="Get a trip with its driver",
)
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    service: TripService = Depends(get_trip_service),
):
    return with_driver(*await service.get_trip(trip_id))


@router.put(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Edit a pending trip",
)
@limiter.limit(settings.rate_limit)
async def update_trip(
    request: Request,
    trip_id: int,
    body: TripUpdateRequest,
    service: TripService = Depends(get_trip_service),
):
    changes = body.model_dump(exclude_unset=True, exclude={"driver_id"})
    return await service.update_trip(trip_id, body.driver_id, changes)


@router.put(
    "/{trip_id}/start",
    response_model=TripResponse,
    summary="Start a trip",
    description=(
        "Only the trip's driver may start it, and only while PENDING.  "
        "Starting a trip in any other status answers 409."
    ),
)
@limiter.limit(settings.rate_limit)
async def start_trip(
    request: Request,
    trip_id: int,
    body: DriverActionRequest,
    background_tasks: BackgroundTasks,
    service: TripService = Depends(get_trip_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    trip = await service.start_trip(trip_id, body.driver_id)
    background_tasks.add_task(
        publisher.publish,
        build_event(
            "trip_started",
            user_ids=[trip.driver_id],
            trip_id=trip.id,
            data={"status": trip.status.value},
        ),
    )
    return trip


@router.put(
    "/{trip_id}/complete",
    response_model=TripResponse,
    summary="Complete a trip",
    description=(
        "Transitions a STARTED trip to COMPLETED.  Confirmed bookings are "
        "completed and their credits paid to the driver.  "
        "Completing a trip that is not STARTED answers 409."
    ),
)
@limiter.limit(settings.rate_limit)
async def complete_trip(
    request: Request,
    trip_id: int,
    body: DriverActionRequest,
    background_tasks: BackgroundTasks,
    service: TripService = Depends(get_trip_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    settlement = await service.complete_trip(trip_id, body.driver_id)
    background_tasks.add_task(
        publisher.publish, _settlement_event("trip_completed", settlement)
    )
    return settlement.trip


@router.put(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel a pending trip",
    description="Open bookings are cancelled; confirmed ones are refunded.",
)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: int,
    body: DriverActionRequest,
    background_tasks: BackgroundTasks,
    service: TripService = Depends(get_trip_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    settlement = await service.cancel_trip(trip_id, body.driver_id)
    background_tasks.add_task(
        publisher.publish, _settlement_event("trip_cancelled", settlement)
    )
    return settlement.trip
