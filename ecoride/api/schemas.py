"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ecoride.domain.enums import BookingStatus, TripStatus, UserRole


class RequestModel(BaseModel):
    """Accepts the web client's camelCase keys as well as snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Requests ──────────────────────────────────────────────────────────


class UserCreateRequest(RequestModel):
    external_id: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    role: UserRole = UserRole.PASSENGER


class UserUpdateRequest(RequestModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)


class RoleChangeRequest(RequestModel):
    role: str


class TripCreateRequest(RequestModel):
    driver_id: int
    departure: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_time: datetime
    arrival_time: datetime
    available_seats: int = Field(..., ge=0)
    total_seats: int = Field(..., ge=1)
    price_per_seat: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None


class TripUpdateRequest(RequestModel):
    driver_id: int
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price_per_seat: Optional[Decimal] = Field(
        None, ge=0, max_digits=10, decimal_places=2
    )
    description: Optional[str] = None


class TripSearchRequest(RequestModel):
    departure: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    day: Optional[date] = Field(None, alias="date")


class DriverActionRequest(RequestModel):
    driver_id: int


class BookingCreateRequest(RequestModel):
    trip_id: int
    passenger_id: int
    seats_booked: int = Field(..., ge=1)
    total_price: Optional[Decimal] = Field(
        None,
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Defaults to seats x price per seat.",
    )
    message: Optional[str] = Field(None, max_length=1000)


class PassengerActionRequest(RequestModel):
    passenger_id: int


class RatingCreateRequest(RequestModel):
    trip_id: int
    rater_id: int
    ratee_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ModerationRequest(RequestModel):
    employee_id: int


class SuspendRequest(RequestModel):
    admin_id: int


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    external_id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    credits: float
    average_rating: float
    total_ratings: int
    is_verified: bool
    is_suspended: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    average_rating: float
    total_ratings: int

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: int
    driver_id: int
    departure: str
    destination: str
    departure_time: datetime
    arrival_time: datetime
    available_seats: int
    total_seats: int
    price_per_seat: float
    description: Optional[str] = None
    status: TripStatus
    is_active: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripWithDriverResponse(TripResponse):
    driver: DriverSummary


class BookingResponse(BaseModel):
    id: int
    trip_id: int
    passenger_id: int
    seats_booked: int
    total_price: float
    status: BookingStatus
    message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingWithTripResponse(BookingResponse):
    trip: TripWithDriverResponse


class RatingResponse(BaseModel):
    id: int
    trip_id: int
    rater_id: int
    ratee_id: int
    rating: int
    comment: Optional[str] = None
    is_approved: Optional[bool] = None
    moderated_by: Optional[int] = None
    moderated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
