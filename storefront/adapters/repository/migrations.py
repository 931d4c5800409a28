"""
Schema migrations for the users, otp_codes and orders tables.

The numbered files in migrations/ are plain SQL written to be re-runnable
(CREATE ... IF NOT EXISTS), so the lifespan applies all of them on every
startup instead of tracking a schema version.
"""

import logging
from pathlib import Path

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

# storefront/adapters/repository/migrations.py -> <project root>/migrations/
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def migration_files(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Return the *.sql files in apply order (001_, 002_, ...)."""
    if not migrations_dir.is_dir():
        return []
    return sorted(migrations_dir.glob("*.sql"), key=lambda path: path.name)


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every migration file, each in its own transaction.

    A failing file is rolled back and aborts startup with RuntimeError;
    files applied before it stay committed.
    """
    files = migration_files(migrations_dir)
    if not files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    with pool.connection() as conn:
        for sql_file in files:
            try:
                conn.execute(sql_file.read_text())
                conn.commit()
            except Exception as exc:
                conn.rollback()
                logger.error("Migration %s failed: %s", sql_file.name, exc)
                raise RuntimeError(f"Database migration failed: {sql_file.name}") from exc
            logger.info("Applied migration %s", sql_file.name)
