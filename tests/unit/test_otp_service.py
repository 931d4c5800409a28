"""
Unit tests for OtpService domain logic.

Tests the OTP flow with in-memory ports to verify:
- Email normalization
- Code generation
- Replace-on-resend ledger semantics
- Single-use consumption and retry after a wrong code
- Expiry (lazy eviction and sweep)
- Delivery failures do not fail the request
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import bcrypt
import pytest

from storefront.domain.exceptions import (
    EmailAlreadyRegistered,
    InvalidOrExpiredCode,
    MissingFields,
    UserNotFound,
)
from storefront.domain.models import OtpPurpose
from storefront.domain.otp import OtpService, PendingRegistration
from storefront.domain.passwords import check_password
from tests.fakes import (
    FakeClock,
    InMemoryOtpLedger,
    InMemoryUserRepository,
    RecordingEmailSender,
    code_from_email,
)

REGISTRATION = OtpPurpose.REGISTRATION
RESET = OtpPurpose.PASSWORD_RESET


def signup(first: str = "A", last: str = "B", password: str = "p1") -> PendingRegistration:
    return PendingRegistration(first_name=first, last_name=last, password=password)


def wrong_code(code: str) -> str:
    return f"{(int(code) + 1) % 1_000_000:06d}"


class TestEmailNormalization:
    """Emails are trimmed and lowercased before lookup and storage."""

    def test_registration_record_keyed_by_normalized_email(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger
    ) -> None:
        otp_service.request_code("  User@Example.COM  ", REGISTRATION, signup())

        assert list(ledger.records) == [("user@example.com", REGISTRATION)]

    def test_code_sent_to_normalized_email(
        self, otp_service: OtpService, sender: RecordingEmailSender
    ) -> None:
        otp_service.request_code("USER@EXAMPLE.COM", REGISTRATION, signup())

        assert sender.messages[0]["to"] == "user@example.com"

    def test_verify_accepts_differently_cased_email(
        self, otp_service: OtpService, sender: RecordingEmailSender
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())

        email = otp_service.verify_code(" USER@example.com ", REGISTRATION, code_from_email(sender))

        assert email == "user@example.com"

    def test_blank_email_rejected(self, otp_service: OtpService) -> None:
        with pytest.raises(MissingFields):
            otp_service.request_code("   ", REGISTRATION, signup())


class TestCodeGeneration:
    def test_code_is_6_digit_string(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())

        code = ledger.records[("user@example.com", REGISTRATION)].code
        assert isinstance(code, str)
        assert re.match(r"^\d{6}$", code)

    def test_codes_vary(self, otp_service: OtpService, ledger: InMemoryOtpLedger) -> None:
        codes = set()
        for _ in range(10):
            otp_service.request_code("user@example.com", REGISTRATION, signup())
            codes.add(ledger.records[("user@example.com", REGISTRATION)].code)

        assert len(codes) >= 2

    def test_emailed_code_matches_stored_code(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, sender: RecordingEmailSender
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())

        assert code_from_email(sender) == ledger.records[("user@example.com", REGISTRATION)].code

    def test_expiry_is_ten_minutes_after_request(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, clock: FakeClock
    ) -> None:
        requested_at = clock()
        otp_service.request_code("user@example.com", REGISTRATION, signup())

        record = ledger.records[("user@example.com", REGISTRATION)]
        assert (record.expires_at - requested_at).total_seconds() == 600


class TestRequestRegistrationCode:
    def test_pending_password_is_hashed(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup(password="secure123"))

        payload = ledger.records[("user@example.com", REGISTRATION)].payload
        assert payload is not None
        assert payload.password_hash != "secure123"
        assert bcrypt.checkpw(b"secure123", payload.password_hash.encode())

    def test_payload_holds_names(self, otp_service: OtpService, ledger: InMemoryOtpLedger) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup("Ada", "Lovelace"))

        payload = ledger.records[("user@example.com", REGISTRATION)].payload
        assert (payload.first_name, payload.last_name) == ("Ada", "Lovelace")

    def test_existing_user_conflicts(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
    ) -> None:
        users.add("taken@example.com", "password123")

        with pytest.raises(EmailAlreadyRegistered):
            otp_service.request_code("Taken@Example.com", REGISTRATION, signup())

        assert ledger.records == {}
        assert sender.messages == []

    @pytest.mark.parametrize(
        "registration",
        [None, signup(first=""), signup(last="  "), signup(password="")],
    )
    def test_incomplete_registration_rejected(
        self, otp_service: OtpService, registration: PendingRegistration | None
    ) -> None:
        with pytest.raises(MissingFields):
            otp_service.request_code("user@example.com", REGISTRATION, registration)

    def test_purpose_accepts_string_value(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger
    ) -> None:
        otp_service.request_code("user@example.com", "registration", signup())

        assert ("user@example.com", REGISTRATION) in ledger.records

    def test_returns_no_code(self, otp_service: OtpService) -> None:
        assert otp_service.request_code("user@example.com", REGISTRATION, signup()) is None


class TestRequestResetCode:
    def test_unknown_user_not_found(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, sender: RecordingEmailSender
    ) -> None:
        with pytest.raises(UserNotFound):
            otp_service.request_code("ghost@example.com", RESET)

        assert ledger.records == {}
        assert sender.messages == []

    def test_reset_record_has_no_payload(
        self, otp_service: OtpService, users: InMemoryUserRepository, ledger: InMemoryOtpLedger
    ) -> None:
        users.add("user@example.com", "password123")

        otp_service.request_code("user@example.com", RESET)

        assert ledger.records[("user@example.com", RESET)].payload is None

    def test_reset_subject_differs_from_registration(
        self, otp_service: OtpService, users: InMemoryUserRepository, sender: RecordingEmailSender
    ) -> None:
        users.add("user@example.com", "password123")

        otp_service.request_code("user@example.com", RESET)

        assert sender.messages[0]["subject"].startswith("Reset Your Password")

    def test_purposes_are_independent(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        ledger: InMemoryOtpLedger,
    ) -> None:
        users.add("user@example.com", "password123")
        otp_service.request_code("user@example.com", RESET)
        reset_code = ledger.records[("user@example.com", RESET)].code

        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code("user@example.com", REGISTRATION, reset_code)


class TestResendReplacesCode:
    def test_resend_leaves_one_record_and_only_new_code_verifies(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        first_code = code_from_email(sender)
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        second_code = code_from_email(sender)

        assert len(ledger.records) == 1
        if first_code != second_code:
            with pytest.raises(InvalidOrExpiredCode):
                otp_service.verify_code("user@example.com", REGISTRATION, first_code)
        otp_service.verify_code("user@example.com", REGISTRATION, second_code)

    def test_reset_requests_one_second_apart(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        sender: RecordingEmailSender,
        clock: FakeClock,
    ) -> None:
        users.add("user@example.com", "old-password")
        otp_service.request_code("user@example.com", RESET)
        first_code = code_from_email(sender)
        clock.advance(1)
        otp_service.request_code("user@example.com", RESET)
        second_code = code_from_email(sender)

        if first_code != second_code:
            with pytest.raises(InvalidOrExpiredCode):
                otp_service.verify_code("user@example.com", RESET, first_code, new_password="new-password")
        otp_service.verify_code("user@example.com", RESET, second_code, new_password="new-password")

        user = users.find_by_email("user@example.com")
        assert check_password("new-password", user.password_hash)

    def test_resend_replaces_payload(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, sender: RecordingEmailSender,
        users: InMemoryUserRepository,
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup("Old", "Name"))
        otp_service.request_code("user@example.com", REGISTRATION, signup("New", "Name"))

        otp_service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))

        assert users.find_by_email("user@example.com").name == "New Name"


class TestVerifyRegistration:
    def test_scenario_creates_user_and_consumes_record(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        users: InMemoryUserRepository,
        sender: RecordingEmailSender,
    ) -> None:
        otp_service.request_code("User@Example.com", REGISTRATION, signup("A", "B", "p1"))
        assert list(ledger.records) == [("user@example.com", REGISTRATION)]

        email = otp_service.verify_code("User@Example.com", REGISTRATION, code_from_email(sender))

        user = users.find_by_email("user@example.com")
        assert email == "user@example.com"
        assert user is not None
        assert user.name == "A B"
        assert user.email == "user@example.com"
        assert check_password("p1", user.password_hash)
        assert not user.is_admin
        assert ledger.records == {}

    def test_correct_code_succeeds_exactly_once(
        self, otp_service: OtpService, sender: RecordingEmailSender, users: InMemoryUserRepository
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        code = code_from_email(sender)

        otp_service.verify_code("user@example.com", REGISTRATION, code)
        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code("user@example.com", REGISTRATION, code)

        assert len(users.users) == 1

    def test_wrong_code_keeps_record_for_retry(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, sender: RecordingEmailSender
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        code = code_from_email(sender)

        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code("user@example.com", REGISTRATION, wrong_code(code))

        assert ("user@example.com", REGISTRATION) in ledger.records
        otp_service.verify_code("user@example.com", REGISTRATION, code)

    def test_no_record_is_invalid_or_expired(self, otp_service: OtpService) -> None:
        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code("nobody@example.com", REGISTRATION, "123456")

    def test_user_registered_meanwhile_conflicts(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        users.add("user@example.com", "other-password")

        with pytest.raises(EmailAlreadyRegistered):
            otp_service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))

        assert len(users.users) == 1

    def test_lost_consume_race_is_invalid_or_expired(
        self, users: InMemoryUserRepository, sender: RecordingEmailSender, clock: FakeClock
    ) -> None:
        ledger = Mock(wraps=InMemoryOtpLedger(clock))
        ledger.delete_if_present.return_value = False
        service = OtpService(users=users, ledger=ledger, email_sender=sender, clock=clock)
        service.request_code("user@example.com", REGISTRATION, signup())

        with pytest.raises(InvalidOrExpiredCode):
            service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))

        assert users.users == {}

    def test_concurrent_verifications_succeed_once(
        self, otp_service: OtpService, sender: RecordingEmailSender, users: InMemoryUserRepository
    ) -> None:
        otp_service.request_code("race@example.com", REGISTRATION, signup())
        code = code_from_email(sender)

        def attempt() -> bool:
            try:
                otp_service.verify_code("race@example.com", REGISTRATION, code)
            except (InvalidOrExpiredCode, EmailAlreadyRegistered):
                return False
            return True

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(lambda _: attempt(), range(5)))

        assert results.count(True) == 1
        assert len(users.users) == 1


class TestVerifyPasswordReset:
    def test_reset_replaces_password_and_consumes_record(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
    ) -> None:
        users.add("user@example.com", "old-password")
        otp_service.request_code("user@example.com", RESET)

        otp_service.verify_code("user@example.com", RESET, code_from_email(sender), new_password="new-password")

        user = users.find_by_email("user@example.com")
        assert check_password("new-password", user.password_hash)
        assert not check_password("old-password", user.password_hash)
        assert ledger.records == {}

    def test_missing_new_password_rejected_before_consuming(
        self,
        otp_service: OtpService,
        users: InMemoryUserRepository,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
    ) -> None:
        users.add("user@example.com", "old-password")
        otp_service.request_code("user@example.com", RESET)

        with pytest.raises(MissingFields):
            otp_service.verify_code("user@example.com", RESET, code_from_email(sender))

        assert ("user@example.com", RESET) in ledger.records

    def test_user_deleted_meanwhile_not_found(
        self, otp_service: OtpService, users: InMemoryUserRepository, sender: RecordingEmailSender
    ) -> None:
        user = users.add("user@example.com", "old-password")
        otp_service.request_code("user@example.com", RESET)
        users.delete(user.id)

        with pytest.raises(UserNotFound):
            otp_service.verify_code("user@example.com", RESET, code_from_email(sender), new_password="x" * 8)

    def test_wrong_code_leaves_password_unchanged(
        self, otp_service: OtpService, users: InMemoryUserRepository, sender: RecordingEmailSender
    ) -> None:
        users.add("user@example.com", "old-password")
        otp_service.request_code("user@example.com", RESET)

        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code(
                "user@example.com", RESET, wrong_code(code_from_email(sender)), new_password="new-password"
            )

        assert check_password("old-password", users.find_by_email("user@example.com").password_hash)
        assert users.save_count == 0


class TestExpiry:
    def test_code_valid_just_before_expiry(
        self, otp_service: OtpService, sender: RecordingEmailSender, clock: FakeClock
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        clock.advance(599)

        otp_service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))

    def test_expired_code_fails_and_is_evicted_on_lookup(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
        clock: FakeClock,
    ) -> None:
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        clock.advance(601)

        with pytest.raises(InvalidOrExpiredCode):
            otp_service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))

        assert ledger.records == {}

    def test_expired_record_removed_by_sweep(
        self, otp_service: OtpService, ledger: InMemoryOtpLedger, clock: FakeClock,
        users: InMemoryUserRepository,
    ) -> None:
        users.add("reset@example.com", "password123")
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        clock.advance(300)
        otp_service.request_code("reset@example.com", RESET)
        clock.advance(301)

        removed = otp_service.purge_expired_codes()

        assert removed == 1
        assert list(ledger.records) == [("reset@example.com", RESET)]

    def test_sweep_with_nothing_expired(self, otp_service: OtpService) -> None:
        assert otp_service.purge_expired_codes() == 0

    def test_custom_ttl(
        self, users: InMemoryUserRepository, ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender, clock: FakeClock,
    ) -> None:
        service = OtpService(users=users, ledger=ledger, email_sender=sender, clock=clock, ttl_seconds=60)
        service.request_code("user@example.com", REGISTRATION, signup())
        clock.advance(61)

        with pytest.raises(InvalidOrExpiredCode):
            service.verify_code("user@example.com", REGISTRATION, code_from_email(sender))


class TestDeliveryFailure:
    def test_delivery_failure_still_stores_code(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        sender.fail = True

        with caplog.at_level(logging.ERROR):
            otp_service.request_code("user@example.com", REGISTRATION, signup())

        assert ("user@example.com", REGISTRATION) in ledger.records
        assert "delivery failed" in caplog.text

    def test_delivery_failure_log_omits_code(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        sender.fail = True

        with caplog.at_level(logging.DEBUG):
            otp_service.request_code("user@example.com", REGISTRATION, signup())

        code = ledger.records[("user@example.com", REGISTRATION)].code
        assert code not in caplog.text

    def test_stored_code_verifies_after_failed_delivery(
        self,
        otp_service: OtpService,
        ledger: InMemoryOtpLedger,
        sender: RecordingEmailSender,
        users: InMemoryUserRepository,
    ) -> None:
        sender.fail = True
        otp_service.request_code("user@example.com", REGISTRATION, signup())
        code = ledger.records[("user@example.com", REGISTRATION)].code

        otp_service.verify_code("user@example.com", REGISTRATION, code)

        assert users.find_by_email("user@example.com") is not None

    def test_delivery_attempted_before_ledger_write(
        self, users: InMemoryUserRepository, clock: FakeClock
    ) -> None:
        calls = Mock()
        service = OtpService(users=users, ledger=calls.ledger, email_sender=calls.sender, clock=clock)

        service.request_code("user@example.com", REGISTRATION, signup())

        names = [call[0] for call in calls.mock_calls]
        assert names == ["sender.send", "ledger.upsert"]
