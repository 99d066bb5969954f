"""
FastAPI application factory.

* Registers routes for orders, drivers, clients and admin.
* Maps the domain error taxonomy to HTTP status codes in one handler.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from mytaxi.api.middleware import limiter
from mytaxi.api.routes import admin, clients, drivers, orders
from mytaxi.config import settings
from mytaxi.domain.errors import (
    AlreadyRegistered,
    ClientNotFound,
    DriverNotFound,
    DuplicateActiveOrder,
    IllegalTransition,
    InsufficientBalance,
    InvalidAmount,
    InvalidPhoneNumber,
    InvalidRating,
    LockTimeout,
    OrderNotFound,
    OrderValidationError,
    OrderWorkflowError,
)
from mytaxi.infrastructure.database import engine
from mytaxi.infrastructure.redis_client import close_redis

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first; unknown subclasses fall back to 400.
ERROR_STATUS: list[tuple[type[OrderWorkflowError], int]] = [
    (OrderNotFound, 404),
    (ClientNotFound, 404),
    (DriverNotFound, 404),
    (DuplicateActiveOrder, 409),
    (IllegalTransition, 409),
    (InsufficientBalance, 409),
    (AlreadyRegistered, 409),
    (InvalidAmount, 422),
    (InvalidRating, 422),
    (InvalidPhoneNumber, 422),
    (OrderValidationError, 422),
    (LockTimeout, 423),
]


def status_for(exc: OrderWorkflowError) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def workflow_error_handler(request: Request, exc: OrderWorkflowError):
    status_code = status_for(exc)
    logger.warning(
        "%s %s rejected: %s (%s)",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )
    body = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, OrderValidationError):
        body["errors"] = [
            {"field": e.field, "message": e.message} for e in exc.errors
        ]
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Nothing runs in the background; release pooled connections on shutdown."""
    logger.info("MyTaxi order service starting")
    yield
    await engine.dispose()
    await close_redis()
    logger.info("MyTaxi order service stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="MyTaxi Orders API",
        description=(
            "Order lifecycle for a ride-hailing service: clients place, "
            "cancel and rate trips; drivers accept and finish them; a "
            "bonus ledger is adjusted on every state change."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(OrderWorkflowError, workflow_error_handler)

    # Routers
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(clients.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
