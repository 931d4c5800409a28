"""Repository adapters - Database implementations."""

from .migrations import run_migrations
from .orders import PostgresOrderRepository
from .otp_ledger import PostgresOtpLedger
from .users import PostgresUserRepository

__all__ = [
    "PostgresOrderRepository",
    "PostgresOtpLedger",
    "PostgresUserRepository",
    "run_migrations",
]
