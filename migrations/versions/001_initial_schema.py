"""Initial schema: users, trips, bookings and ratings.

Revision ID: 001
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(128), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column(
            "role",
            sa.Enum("passenger", "driver", "employee", "admin", name="userrole"),
            nullable=False,
            server_default="passenger",
        ),
        sa.Column(
            "credits", sa.Numeric(10, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "average_rating", sa.Numeric(3, 2), nullable=False, server_default="0"
        ),
        sa.Column("total_ratings", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "is_verified", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "is_suspended", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("departure", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False),
        sa.Column("total_seats", sa.Integer, nullable=False),
        sa.Column("price_per_seat", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "started", "completed", "cancelled", name="tripstatus"
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("available_seats >= 0", name="ck_trips_seats_non_negative"),
        sa.CheckConstraint(
            "available_seats <= total_seats", name="ck_trips_seats_within_capacity"
        ),
    )
    op.create_index("idx_trips_driver", "trips", ["driver_id"])
    op.create_index("idx_trips_open", "trips", ["status", "is_active"])
    op.create_index("idx_trips_departure_time", "trips", ["departure_time"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer, sa.ForeignKey("trips.id"), nullable=False),
        sa.Column(
            "passenger_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("seats_booked", sa.Integer, nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "confirmed", "cancelled", "completed", name="bookingstatus"
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("seats_booked > 0", name="ck_bookings_seats_positive"),
    )
    op.create_index("idx_bookings_trip", "bookings", ["trip_id"])
    op.create_index("idx_bookings_passenger", "bookings", ["passenger_id"])

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer, sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("rater_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ratee_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("is_approved", sa.Boolean, nullable=True),
        sa.Column(
            "moderated_by", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("moderated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )
    op.create_index("idx_ratings_ratee", "ratings", ["ratee_id"])
    op.create_index("idx_ratings_approval", "ratings", ["is_approved"])


def downgrade() -> None:
    op.drop_table("ratings")
    op.drop_table("bookings")
    op.drop_table("trips")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS tripstatus")
    op.execute("DROP TYPE IF EXISTS userrole")
