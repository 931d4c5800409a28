"""
Shared fixtures for integration tests.

Requires PostgreSQL reachable at DATABASE_URL. The whole directory is
skipped when the database cannot be reached.
"""

from collections.abc import Callable, Generator
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from storefront.adapters.repository import run_migrations
from storefront.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and apply migrations once per session."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
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
    """Empty all tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM otp_codes")
        conn.execute("DELETE FROM orders")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield


@pytest.fixture
def make_order(pool: ConnectionPool) -> Callable[..., UUID]:
    """Return a helper inserting an unpaid order."""

    def insert(user_id: UUID | None = None) -> UUID:
        order_id = uuid4()
        with pool.connection() as conn:
            conn.execute(
                "INSERT INTO orders (id, user_id, total_price) VALUES (%s, %s, %s)",
                (order_id, user_id, 499),
            )
            conn.commit()
        return order_id

    return insert
