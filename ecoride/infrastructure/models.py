"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``     -- members (passengers, drivers, employees, admins)
* ``trips``     -- driver-published seat offers
* ``bookings``  -- a passenger's reservation of seats on a trip
* ``ratings``   -- post-trip ratings awaiting / past moderation

Constraints
-----------
* CHECK ``0 <= available_seats <= total_seats`` on ``trips`` backs the
  conditional seat decrement done by ``TripRepository.reserve_seats``.
* CHECK ``credits >= 0`` on ``users`` backs ``UserRepository.debit``.

Indexes
-------
* **B-Tree** on ``trips.driver_id``, ``trips.status``/``is_active``,
  ``trips.departure_time``, ``bookings.trip_id``, ``bookings.passenger_id``,
  ``ratings.ratee_id`` and ``ratings.is_approved`` for the listing queries.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from .database import Base
from ecoride.domain.enums import BookingStatus, TripStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(128), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(
        Enum(UserRole, name="userrole", values_callable=_values),
        default=UserRole.PASSENGER,
        nullable=False,
    )
    credits = Column(Numeric(10, 2), default=0, nullable=False)
    average_rating = Column(Numeric(3, 2), default=0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_suspended = Column(Boolean, default=False, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Free text, not geocoded
    departure = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=False)

    available_seats = Column(Integer, nullable=False)
    total_seats = Column(Integer, nullable=False)
    price_per_seat = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(
        Enum(TripStatus, name="tripstatus", values_callable=_values),
        default=TripStatus.PENDING,
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_trips_seats_non_negative"),
        CheckConstraint(
            "available_seats <= total_seats", name="ck_trips_seats_within_capacity"
        ),
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_open", "status", "is_active"),
        Index("idx_trips_departure_time", "departure_time"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    seats_booked = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(BookingStatus, name="bookingstatus", values_callable=_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    message = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("seats_booked > 0", name="ck_bookings_seats_positive"),
        Index("idx_bookings_trip", "trip_id"),
        Index("idx_bookings_passenger", "passenger_id"),
    )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    rater_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ratee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    # None = pending, True = approved, False = rejected
    is_approved = Column(Boolean, nullable=True)
    moderated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    moderated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
        Index("idx_ratings_ratee", "ratee_id"),
        Index("idx_ratings_approval", "is_approved"),
    )
