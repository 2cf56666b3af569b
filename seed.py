"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin (``admin@ecoride.com``) and 1 moderation employee
  - 3 drivers and 4 passengers, each with the signup credits
  - 6 trips (mix of PENDING, STARTED, COMPLETED)
  - a few bookings and pending ratings on the completed trip
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import text

from ecoride.config import settings
from ecoride.domain.enums import BookingStatus, TripStatus, UserRole
from ecoride.infrastructure.database import async_session_factory, engine
from ecoride.infrastructure.models import (
    BookingModel,
    RatingModel,
    TripModel,
    UserModel,
)


USERS = [
    {"first": "Admin", "last": "EcoRide", "email": settings.admin_email, "role": UserRole.ADMIN},
    {"first": "Julie", "last": "Moreau", "email": "julie@ecoride.com", "role": UserRole.EMPLOYEE},
    {"first": "Lucas", "last": "Martin", "email": "lucas@example.com", "role": UserRole.DRIVER},
    {"first": "Chloé", "last": "Bernard", "email": "chloe@example.com", "role": UserRole.DRIVER},
    {"first": "Hugo", "last": "Petit", "email": "hugo@example.com", "role": UserRole.DRIVER},
    {"first": "Emma", "last": "Durand", "email": "emma@example.com", "role": UserRole.PASSENGER},
    {"first": "Léa", "last": "Leroy", "email": "lea@example.com", "role": UserRole.PASSENGER},
    {"first": "Nathan", "last": "Roux", "email": "nathan@example.com", "role": UserRole.PASSENGER},
    {"first": "Manon", "last": "Fournier", "email": "manon@example.com", "role": UserRole.PASSENGER},
]

# (driver index, departure, destination, days from now, hours, seats, price, status)
TRIPS = [
    (2, "Paris", "Lyon", 1, 5, 3, "25.00", TripStatus.PENDING),
    (2, "Lyon", "Marseille", 3, 3, 2, "18.50", TripStatus.PENDING),
    (3, "Bordeaux", "Toulouse", 2, 2, 4, "12.00", TripStatus.PENDING),
    (3, "Nantes", "Rennes", 0, 1, 3, "8.00", TripStatus.STARTED),
    (4, "Lille", "Paris", 5, 3, 4, "15.00", TripStatus.PENDING),
    (4, "Paris", "Rouen", -2, 2, 3, "10.00", TripStatus.COMPLETED),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(
                external_id=f"seed-{u['email']}",
                email=u["email"],
                first_name=u["first"],
                last_name=u["last"],
                role=u["role"],
                credits=settings.signup_credits,
                is_verified=True,
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Trips ─────────────────────────────────────────────────────
        now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
        trip_models = []
        for driver, dep, dest, days, hours, seats, price, status in TRIPS:
            departure_time = now + timedelta(days=days)
            m = TripModel(
                driver_id=user_models[driver].id,
                departure=dep,
                destination=dest,
                departure_time=departure_time,
                arrival_time=departure_time + timedelta(hours=hours),
                available_seats=seats,
                total_seats=seats,
                price_per_seat=Decimal(price),
                status=status,
                is_active=status != TripStatus.COMPLETED,
                started_at=departure_time if status != TripStatus.PENDING else None,
                completed_at=(
                    departure_time + timedelta(hours=hours)
                    if status == TripStatus.COMPLETED
                    else None
                ),
            )
            session.add(m)
            trip_models.append(m)
        await session.flush()
        print(f"  Created {len(trip_models)} trips")

        # ── Bookings ──────────────────────────────────────────────────
        bookings_data = [
            # (trip index, passenger index, seats, status)
            (0, 5, 1, BookingStatus.CONFIRMED),
            (0, 6, 1, BookingStatus.PENDING),
            (2, 7, 2, BookingStatus.PENDING),
            (5, 8, 1, BookingStatus.COMPLETED),
            (5, 5, 1, BookingStatus.COMPLETED),
        ]
        for trip_idx, passenger_idx, seats, status in bookings_data:
            trip = trip_models[trip_idx]
            trip.available_seats -= seats
            session.add(
                BookingModel(
                    trip_id=trip.id,
                    passenger_id=user_models[passenger_idx].id,
                    seats_booked=seats,
                    total_price=trip.price_per_seat * seats,
                    status=status,
                )
            )
        await session.flush()
        print(f"  Created {len(bookings_data)} bookings")

        # ── Ratings (pending moderation) ──────────────────────────────
        completed = trip_models[5]
        for passenger_idx, score in ((8, 5), (5, 4)):
            session.add(
                RatingModel(
                    trip_id=completed.id,
                    rater_id=user_models[passenger_idx].id,
                    ratee_id=completed.driver_id,
                    rating=score,
                    comment="Trajet agréable",
                )
            )
        driver = user_models[4]
        driver.average_rating, driver.total_ratings = Decimal("4.50"), 2
        await session.flush()
        print("  Created 2 ratings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
