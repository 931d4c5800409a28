"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from storefront.adapters.repository import run_migrations
from storefront.api.dependencies import build_email_sender, build_otp_service
from storefront.api.errors import add_exception_handlers
from storefront.api.sweeper import start_otp_sweeper, stop_otp_sweeper
from storefront.api.v1 import router as v1_router
from storefront.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Email-OTP registration, password reset, login and user administration",
    },
    {
        "name": "orders",
        "description": "Payment verification for orders",
    },
]


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_pool(settings: Settings) -> ConnectionPool:
    """
    Create the connection pool with bounded waits.

    Pool checkout, connection setup and each statement all time out, so a
    stalled database fails the request instead of hanging it.
    """
    return ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout_seconds,
        kwargs={
            "connect_timeout": settings.connect_timeout_seconds,
            "options": f"-c statement_timeout={settings.statement_timeout_ms}",
        },
        open=True,
    )


def check_payment_settings(settings: Settings) -> None:
    """Log which Razorpay key signatures are verified against."""
    if not settings.razorpay_key_secret:
        logger.warning("RAZORPAY_KEY_SECRET is not set; payment verification will reject all signatures")
    elif not settings.razorpay_key_id:
        logger.warning("RAZORPAY_KEY_ID is not set; cannot tell which Razorpay account the secret belongs to")
    else:
        logger.info("Verifying Razorpay payments for key %s", settings.razorpay_key_id)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations
    - Creates the email sender shared by all requests
    - Starts the expired-OTP sweeper
    - Tears all of it down in reverse order
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting application...")
    check_payment_settings(settings)

    logger.info("Connecting to database...")
    pool = create_pool(settings)

    logger.info("Running database migrations...")
    run_migrations(pool)

    email_sender = build_email_sender(settings)
    logger.info("Email backend: %s", settings.email_backend)

    # Store shared resources in app state for dependency injection
    app.state.pool = pool
    app.state.email_sender = email_sender

    otp_service = build_otp_service(pool, email_sender, settings)
    sweeper = start_otp_sweeper(otp_service.purge_expired_codes, settings.otp_sweep_interval_seconds)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await stop_otp_sweeper(sweeper)
    close = getattr(email_sender, "close", None)
    if close is not None:
        close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="storefront-auth",
    description="Storefront identity and payment API - email-OTP registration and password reset, "
    "Razorpay payment verification",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

add_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
