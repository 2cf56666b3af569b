"""
FastAPI application factory.

* Registers routes for users, trips, bookings, ratings, admin and the
  WebSocket push channel.
* Starts / stops the background notifier via lifespan events.
* Maps domain errors to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ecoride.api import websocket
from ecoride.api.middleware import limiter
from ecoride.api.routes import admin, bookings, ratings, trips, users
from ecoride.config import settings
from ecoride.domain.exceptions import EcoRideError
from ecoride.infrastructure.database import engine
from ecoride.infrastructure.redis_client import close_redis
from ecoride.workers import notifier as _notifier

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the notifier on startup; stop it and release pools on shutdown."""
    await _notifier.start_notifier()
    yield
    await _notifier.stop_notifier()
    await close_redis()
    await engine.dispose()


async def domain_error_handler(request: Request, exc: EcoRideError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid data", "errors": jsonable_encoder(exc.errors())},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="EcoRide Marketplace API",
        description=(
            "Drivers publish trips, passengers search and book seats and pay "
            "with credits.  Ratings go through employee moderation.  Booking "
            "and trip events are pushed over WebSocket."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Errors
    app.add_exception_handler(EcoRideError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    # Routers
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(ratings.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(websocket.router)

    return app
