"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory port implementations
- Domain services wired to them
"""

import pytest

from storefront.domain.accounts import AccountService
from storefront.domain.otp import OtpService
from storefront.domain.payments import PaymentVerificationService
from tests.fakes import (
    TEST_KEY_SECRET,
    FakeClock,
    InMemoryOrderRepository,
    InMemoryOtpLedger,
    InMemoryUserRepository,
    RecordingEmailSender,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryOtpLedger:
    return InMemoryOtpLedger(clock)


@pytest.fixture
def users(clock: FakeClock) -> InMemoryUserRepository:
    return InMemoryUserRepository(clock)


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def orders() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def otp_service(
    users: InMemoryUserRepository,
    ledger: InMemoryOtpLedger,
    sender: RecordingEmailSender,
    clock: FakeClock,
) -> OtpService:
    return OtpService(users=users, ledger=ledger, email_sender=sender, clock=clock)


@pytest.fixture
def account_service(users: InMemoryUserRepository) -> AccountService:
    return AccountService(users=users)


@pytest.fixture
def payment_service(orders: InMemoryOrderRepository, clock: FakeClock) -> PaymentVerificationService:
    return PaymentVerificationService(orders=orders, key_secret=TEST_KEY_SECRET, clock=clock)

