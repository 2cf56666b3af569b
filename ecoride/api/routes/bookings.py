"""
Booking endpoints
=================

POST /api/v1/bookings                          -- book seats (201)
GET  /api/v1/bookings/passenger/{passenger_id} -- a passenger's bookings with trips
GET  /api/v1/bookings/trip/{trip_id}           -- bookings on a trip
PUT  /api/v1/bookings/{booking_id}/pay         -- pay with credits (PENDING -> CONFIRMED)
PUT  /api/v1/bookings/{booking_id}/cancel      -- cancel and give the seats back
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ecoride.api.dependencies import get_booking_service, get_publisher
from ecoride.api.middleware import limiter
from ecoride.api.routes.trips import with_driver
from ecoride.api.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingWithTripResponse,
    PassengerActionRequest,
)
from ecoride.config import settings
from ecoride.infrastructure.events import EventPublisher, build_event
from ecoride.infrastructure.models import BookingModel, TripModel
from ecoride.services.bookings import BookingService, NewBooking

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _booking_event(
    event_type: str, booking: BookingModel, driver_id: int | None = None
) -> dict:
    user_ids = [booking.passenger_id]
    if driver_id is not None:
        user_ids.append(driver_id)
    return build_event(
        event_type,
        user_ids=user_ids,
        trip_id=booking.trip_id,
        data={
            "booking_id": booking.id,
            "seats_booked": booking.seats_booked,
            "status": booking.status.value,
        },
    )


async def _driver_of(service: BookingService, booking: BookingModel) -> int | None:
    trip: TripModel | None = await service.trips.get_by_id(booking.trip_id)
    return trip.driver_id if trip else None


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Book seats on a trip",
    responses={
        404: {"description": "Trip not found"},
        400: {"description": "Not enough available seats"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    booking = await service.create_booking(NewBooking(**body.model_dump()))
    background_tasks.add_task(
        publisher.publish,
        _booking_event("booking_created", booking, await _driver_of(service, booking)),
    )
    return booking


@router.get(
    "/passenger/{passenger_id}",
    response_model=list[BookingWithTripResponse],
    summary="List a passenger's bookings with their trips",
)
@limiter.limit(settings.rate_limit)
async def list_passenger_bookings(
    request: Request,
    passenger_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return [
        BookingWithTripResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            trip=with_driver(trip, driver),
        )
        for booking, trip, driver in await service.list_for_passenger(passenger_id)
    ]


@router.get(
    "/trip/{trip_id}",
    response_model=list[BookingResponse],
    summary="List the bookings on a trip",
)
@limiter.limit(settings.rate_limit)
async def list_trip_bookings(
    request: Request,
    trip_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_for_trip(trip_id)


@router.put(
    "/{booking_id}/pay",
    response_model=BookingResponse,
    summary="Pay a booking with credits",
)
@limiter.limit(settings.rate_limit)
async def pay_booking(
    request: Request,
    booking_id: int,
    body: PassengerActionRequest,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    booking = await service.pay_booking(booking_id, body.passenger_id)
    background_tasks.add_task(
        publisher.publish,
        _booking_event("booking_paid", booking, await _driver_of(service, booking)),
    )
    return booking


@router.put(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description=(
        "Allowed while the trip has not started.  Seats are returned to the "
        "trip and a paid booking is refunded."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_booking(
    request: Request,
    booking_id: int,
    body: PassengerActionRequest,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    publisher: EventPublisher = Depends(get_publisher),
):
    booking = await service.cancel_booking(booking_id, body.passenger_id)
    background_tasks.add_task(
        publisher.publish,
        _booking_event(
            "booking_cancelled", booking, await _driver_of(service, booking)
        ),
    )
    return booking
