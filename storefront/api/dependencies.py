"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from storefront.adapters.repository import (
    PostgresOrderRepository,
    PostgresOtpLedger,
    PostgresUserRepository,
)
from storefront.adapters.smtp import ConsoleEmailSender, SmtpEmailSender
from storefront.api.errors import to_http_exception
from storefront.config.settings import Settings, get_settings
from storefront.domain.accounts import AccountService
from storefront.domain.exceptions import StorefrontError
from storefront.domain.models import User
from storefront.domain.otp import OtpService
from storefront.domain.payments import PaymentVerificationService
from storefront.domain.ports import EmailSender


def build_email_sender(settings: Settings) -> ConsoleEmailSender | SmtpEmailSender:
    """Create the process-wide email sender selected by settings."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.email_from,
            username=settings.smtp_user,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            use_ssl=settings.smtp_ssl,
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleEmailSender(from_address=settings.email_from)


def build_otp_service(pool: ConnectionPool, email_sender: EmailSender, settings: Settings) -> OtpService:
    """Wire the OTP service; shared by request handlers and the sweeper."""
    return OtpService(
        users=PostgresUserRepository(pool, bcrypt_cost=settings.bcrypt_cost),
        ledger=PostgresOtpLedger(pool),
        email_sender=email_sender,
        store_name=settings.email_from_name,
        ttl_seconds=settings.otp_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender created at startup."""
    return request.app.state.email_sender


def get_user_repository(request: Request) -> PostgresUserRepository:
    """Create user repository with connection pool from app state."""
    return PostgresUserRepository(get_pool(request), bcrypt_cost=get_settings().bcrypt_cost)


def get_otp_service(request: Request) -> OtpService:
    """
    Create OTP service with injected dependencies.

    Wires together the repositories and email sender for the domain service.
    """
    return build_otp_service(get_pool(request), get_email_sender(request), get_settings())


def get_account_service(request: Request) -> AccountService:
    return AccountService(users=get_user_repository(request))


def get_payment_service(request: Request) -> PaymentVerificationService:
    return PaymentVerificationService(
        orders=PostgresOrderRepository(get_pool(request)),
        key_secret=get_settings().razorpay_key_secret,
    )


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def get_basic_auth_credentials(
    credentials: HTTPBasicCredentials = Depends(http_basic),
) -> tuple[str, str]:
    """
    Extract and normalize credentials from HTTP BASIC AUTH header.

    FastAPI's HTTPBasic automatically:
    - Returns 401 for missing Authorization header
    - Returns 401 for malformed base64 encoding
    - Parses base64(email:password) format

    Returns:
        Tuple of (normalized_email, password)
    """
    email = credentials.username.strip().lower()
    password = credentials.password
    return email, password


def get_current_user(
    credentials: tuple[str, str] = Depends(get_basic_auth_credentials),
    accounts: AccountService = Depends(get_account_service),
) -> User:
    """Resolve the Basic-auth caller to a user; blocked accounts get 403."""
    email, password = credentials
    try:
        return accounts.authenticate(email, password)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized as an admin",
        )
    return user
