"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from .models import NewUser, OtpPurpose, OtpRecord, PaymentResult, RegistrationPayload, User


class OtpLedger(Protocol):
    """Port interface for one-time code persistence."""

    def upsert(
        self,
        email: str,
        purpose: OtpPurpose,
        code: str,
        expires_at: datetime,
        payload: RegistrationPayload | None = None,
    ) -> OtpRecord:
        """
        Store a code for (email, purpose), replacing any prior record.

        The delete of the old record and the insert of the new one happen
        in one transaction, so readers never see two live records for a key.

        Args:
            email: Normalized email address
            purpose: Code scope
            code: 6-digit code
            expires_at: Absolute expiry (timezone-aware)
            payload: Pending registration data, registration purpose only

        Returns:
            The stored record
        """
        ...

    def find_live(self, email: str, purpose: OtpPurpose, now: datetime) -> OtpRecord | None:
        """
        Return the unexpired record for (email, purpose), or None.

        A record already past its expiry is deleted as it is encountered.
        """
        ...

    def delete_if_present(self, record_id: UUID) -> bool:
        """
        Delete a record by id.

        Returns:
            True if this call removed the record, False if it was already gone.
            Two concurrent callers never both get True.
        """
        ...

    def delete_all_expired(self, now: datetime) -> int:
        """Delete every record with expires_at <= now; returns the count."""
        ...


class UserRepository(Protocol):
    """Port interface for the credential store."""

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: UUID) -> User | None: ...

    def create(self, new_user: NewUser) -> User:
        """
        Insert a user.

        Raises:
            EmailAlreadyRegistered: If the email is taken (unique constraint)
        """
        ...

    def save(self, user: User) -> User:
        """
        Persist profile and flag changes.

        Re-hashes only when user.password_changed; otherwise the stored hash
        is kept.

        Raises:
            EmailAlreadyRegistered: If an email change collides with another user
        """
        ...

    def delete(self, user_id: UUID) -> bool: ...

    def search(self, term: str, offset: int, limit: int) -> tuple[list[User], int]:
        """Newest-first page of users matching term; returns (users, total)."""
        ...


class OrderRepository(Protocol):
    """Port interface for order payment state."""

    def mark_paid(self, order_id: UUID, paid_at: datetime, result: PaymentResult) -> bool:
        """
        Overwrite the order's paid flag, paid timestamp and payment result.

        Returns:
            False if no order has this id
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> None:
        """
        Deliver one message.

        Raises:
            DeliveryError: On transport failure or timeout
        """
        ...
