"""
OTP flow domain service - registration and password reset gated by email codes.

Lifecycle of a ledger record for one (email, purpose) key:

    request_code  -> record written (any prior record for the key replaced)
    verify_code   -> record consumed on a matching code, left live on a miss
    expiry        -> record invisible to lookups after expires_at, deleted
                     lazily on lookup and by purge_expired_codes()

Delivery policy: the email is attempted before the ledger write. A
DeliveryError is logged and the request still succeeds, so the stored code
stays valid for a resend or a manual share.

Single use: a verified record is removed with delete_if_present(), which
reports whether this call did the delete. Of two concurrent verifications
with the same code only one can win; the other sees InvalidOrExpiredCode.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .exceptions import (
    DeliveryError,
    EmailAlreadyRegistered,
    InvalidOrExpiredCode,
    MissingFields,
    UserNotFound,
)
from .models import NewUser, OtpPurpose, RegistrationPayload
from .otp_email import render_otp_email
from .passwords import hash_password
from .ports import EmailSender, OtpLedger, UserRepository

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
DEFAULT_TTL_SECONDS = 600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


@dataclass(frozen=True)
class PendingRegistration:
    """Sign-up form submitted with a registration code request."""

    first_name: str
    last_name: str
    password: str


@dataclass
class OtpService:
    """
    Domain service for OTP-gated registration and password reset.

    Orchestrates code generation, delivery, ledger writes, expiry checks,
    and promotion of pending registration data into the credential store.
    """

    users: UserRepository
    ledger: OtpLedger
    email_sender: EmailSender
    store_name: str = "smartPrintGuide"
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    bcrypt_cost: int = 10
    clock: Callable[[], datetime] = utcnow

    def request_code(
        self,
        email: str,
        purpose: OtpPurpose | str,
        registration: PendingRegistration | None = None,
    ) -> None:
        """
        Issue a fresh code for (email, purpose) and email it.

        Args:
            email: User's email address (will be normalized)
            purpose: registration or password-reset
            registration: Sign-up form, required for registration

        Raises:
            MissingFields: Registration form missing or has blank fields
            EmailAlreadyRegistered: Registration for an email that has a user
            UserNotFound: Password reset for an unknown email
        """
        purpose = OtpPurpose(purpose)
        normalized_email = normalize_email(email)
        if not normalized_email:
            raise MissingFields("email")

        payload = None
        if purpose is OtpPurpose.REGISTRATION:
            payload = self._prepare_registration(normalized_email, registration)
        elif self.users.find_by_email(normalized_email) is None:
            raise UserNotFound(normalized_email)

        code = self._generate_code()
        self._deliver(normalized_email, purpose, code)

        expires_at = self.clock() + timedelta(seconds=self.ttl_seconds)
        self.ledger.upsert(normalized_email, purpose, code, expires_at, payload)
        logger.info("Issued %s code for %s", purpose.value, normalized_email)

    def verify_code(
        self,
        email: str,
        purpose: OtpPurpose | str,
        code: str,
        new_password: str | None = None,
    ) -> str:
        """
        Redeem a code.

        Registration creates the user from the pending payload (no session
        is issued; the caller logs in separately). Password reset replaces
        the user's password with new_password.

        Returns:
            Normalized email address

        Raises:
            InvalidOrExpiredCode: No live record, wrong code, or lost a race
            EmailAlreadyRegistered: Someone registered the email meanwhile
            UserNotFound: Password reset user vanished meanwhile
            MissingFields: Password reset without new_password
        """
        purpose = OtpPurpose(purpose)
        normalized_email = normalize_email(email)

        if purpose is OtpPurpose.PASSWORD_RESET and not new_password:
            raise MissingFields("new_password")

        now = self.clock()
        record = self.ledger.find_live(normalized_email, purpose, now)
        if record is None or record.is_expired(now):
            raise InvalidOrExpiredCode(normalized_email)
        if not secrets.compare_digest(record.code.encode(), (code or "").strip().encode()):
            raise InvalidOrExpiredCode(normalized_email)

        if purpose is OtpPurpose.REGISTRATION:
            if self.users.find_by_email(normalized_email) is not None:
                raise EmailAlreadyRegistered(normalized_email)
            if record.payload is None:
                raise InvalidOrExpiredCode(normalized_email)
            if not self.ledger.delete_if_present(record.id):
                raise InvalidOrExpiredCode(normalized_email)
            user = self.users.create(
                NewUser(
                    email=normalized_email,
                    first_name=record.payload.first_name,
                    last_name=record.payload.last_name,
                    password_hash=record.payload.password_hash,
                )
            )
            logger.info("Registered user %s", user.email)
            return user.email

        user = self.users.find_by_email(normalized_email)
        if user is None:
            raise UserNotFound(normalized_email)
        if not self.ledger.delete_if_present(record.id):
            raise InvalidOrExpiredCode(normalized_email)
        user.set_password(new_password)
        self.users.save(user)
        logger.info("Password reset for %s", user.email)
        return user.email

    def purge_expired_codes(self) -> int:
        """Delete every expired ledger record; returns how many were removed."""
        removed = self.ledger.delete_all_expired(self.clock())
        if removed:
            logger.info("Purged %d expired OTP record(s)", removed)
        return removed

    def _prepare_registration(
        self, email: str, registration: PendingRegistration | None
    ) -> RegistrationPayload:
        if registration is None or not all(
            value and value.strip()
            for value in (registration.first_name, registration.last_name, registration.password)
        ):
            raise MissingFields("first_name, last_name, password")
        if self.users.find_by_email(email) is not None:
            raise EmailAlreadyRegistered(email)
        return RegistrationPayload(
            first_name=registration.first_name.strip(),
            last_name=registration.last_name.strip(),
            password_hash=hash_password(registration.password, self.bcrypt_cost),
        )

    def _deliver(self, email: str, purpose: OtpPurpose, code: str) -> None:
        message = render_otp_email(code, purpose, self.store_name, self.ttl_seconds)
        try:
            self.email_sender.send(
                to=email,
                subject=message.subject,
                html_body=message.html_body,
                text_body=message.text_body,
                from_name=self.store_name,
            )
        except DeliveryError as exc:
            # Code is still stored; the request does not fail on delivery.
            logger.error("OTP email delivery failed for %s (%s): %s", email, purpose.value, exc)

    def _generate_code(self) -> str:
        """
        Generate a cryptographically secure 6-digit code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(CODE_LENGTH))
