"""
Domain layer - Pure business logic with zero framework imports.

This package contains the OTP flow, payment verification and account
services. It defines its own port interfaces for infrastructure
abstraction; adapters implement them.
"""

from .accounts import AccountService
from .exceptions import (
    AccountBlocked,
    AdminAccountProtected,
    DeliveryError,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidOrExpiredCode,
    InvalidSignature,
    MissingFields,
    NotFound,
    OrderNotFound,
    StorefrontError,
    UserNotFound,
)
from .models import OtpPurpose, OtpRecord, PaymentResult, User
from .otp import OtpService, PendingRegistration
from .payments import PaymentVerificationService
from .ports import EmailSender, OrderRepository, OtpLedger, UserRepository

__all__ = [
    "AccountBlocked",
    "AccountService",
    "AdminAccountProtected",
    "DeliveryError",
    "EmailAlreadyRegistered",
    "EmailSender",
    "InvalidCredentials",
    "InvalidOrExpiredCode",
    "InvalidSignature",
    "MissingFields",
    "NotFound",
    "OrderNotFound",
    "OrderRepository",
    "OtpLedger",
    "OtpPurpose",
    "OtpRecord",
    "OtpService",
    "PaymentResult",
    "PaymentVerificationService",
    "PendingRegistration",
    "StorefrontError",
    "User",
    "UserNotFound",
    "UserRepository",
]
