"""
Shared fixtures for adversarial tests.

Provides a database pool and OTP service wired to the PostgreSQL
adapters for race condition tests.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from storefront.adapters.repository import PostgresOtpLedger, PostgresUserRepository, run_migrations
from storefront.config.settings import get_settings
from storefront.domain.otp import OtpService
from tests.fakes import RecordingEmailSender


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        kwargs={"connect_timeout": settings.connect_timeout_seconds},
        open=True,
    )
    try:
        pool.wait(timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty ledger and users before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM otp_codes")
        conn.execute("DELETE FROM orders")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def postgres_otp_service(pool: ConnectionPool, sender: RecordingEmailSender) -> OtpService:
    return OtpService(
        users=PostgresUserRepository(pool),
        ledger=PostgresOtpLedger(pool),
        email_sender=sender,
    )
