"""
Domain exceptions - Semantic error types for the storefront core.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class StorefrontError(Exception):
    """Base class for storefront domain errors."""

    pass


class MissingFields(StorefrontError):
    """Required input was absent or blank."""

    pass


class EmailAlreadyRegistered(StorefrontError):
    """A committed user already owns this email."""

    pass


class NotFound(StorefrontError):
    """Base class for lookups that matched nothing."""

    pass


class UserNotFound(NotFound):
    pass


class OrderNotFound(NotFound):
    pass


class InvalidOrExpiredCode(StorefrontError):
    """OTP absent, expired, already consumed, or mismatched."""

    pass


class InvalidSignature(StorefrontError):
    """Payment signature did not match the provider secret."""

    pass


class InvalidCredentials(StorefrontError):
    """Email/password mismatch or wrong login role."""

    pass


class AccountBlocked(StorefrontError):
    """Account disabled by an administrator."""

    pass


class AdminAccountProtected(StorefrontError):
    """Administrator accounts cannot be blocked or removed."""

    pass


class DeliveryError(StorefrontError):
    """Email transport failed or timed out."""

    pass
