"""
Domain error taxonomy.

Every error carries the HTTP status the API answers with, so routes can
let them propagate and the application-level handler renders
``{"detail": message}``.
"""

from __future__ import annotations


class EcoRideError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ── 404 ───────────────────────────────────────────────────────────────


class NotFound(EcoRideError):
    status_code = 404
    default_message = "Not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class TripNotFound(NotFound):
    default_message = "Trip not found"


class BookingNotFound(NotFound):
    default_message = "Booking not found"


class RatingNotFound(NotFound):
    default_message = "Rating not found"


class NotFoundOrUnauthorized(NotFound):
    """Deliberately does not say which of the two it was."""

    default_message = "Not found or unauthorized"


# ── 400 ───────────────────────────────────────────────────────────────


class ValidationError(EcoRideError):
    status_code = 400
    default_message = "Invalid data"


class BusinessRuleViolation(EcoRideError):
    status_code = 400
    default_message = "Operation not allowed"


class InsufficientSeats(BusinessRuleViolation):
    default_message = "Not enough available seats"


class InsufficientCredits(BusinessRuleViolation):
    default_message = "Not enough credits"


class TripUnavailable(BusinessRuleViolation):
    default_message = "Trip is not open for booking"


# ── 403 ───────────────────────────────────────────────────────────────


class Forbidden(EcoRideError):
    status_code = 403
    default_message = "Forbidden"


class UserSuspended(Forbidden):
    default_message = "User is suspended"


# ── 409 ───────────────────────────────────────────────────────────────


class Conflict(EcoRideError):
    status_code = 409
    default_message = "Conflict"


class UserAlreadyExists(Conflict):
    default_message = "User already exists"


class InvalidTripTransition(Conflict):
    """Raised when a trip status change violates the state machine."""


class InvalidBookingTransition(Conflict):
    """Raised when a booking status change violates the state machine."""


class RatingAlreadyModerated(Conflict):
    default_message = "Rating has already been moderated"
