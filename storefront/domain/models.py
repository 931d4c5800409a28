"""
Domain entities - Plain dataclasses shared by services and adapters.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class OtpPurpose(str, Enum):
    """
    Scope of a one-time code.

    A code issued for one purpose never satisfies the other; the ledger
    keys records by (email, purpose).
    """

    REGISTRATION = "registration"
    PASSWORD_RESET = "password-reset"


@dataclass(frozen=True)
class RegistrationPayload:
    """Pending account data held in the ledger until the code is verified."""

    first_name: str
    last_name: str
    password_hash: str

    def to_dict(self) -> dict[str, str]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "password_hash": self.password_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RegistrationPayload":
        return cls(
            first_name=data["first_name"],
            last_name=data["last_name"],
            password_hash=data["password_hash"],
        )


@dataclass(frozen=True)
class OtpRecord:
    """A live one-time code for an (email, purpose) pair."""

    id: UUID
    email: str
    purpose: OtpPurpose
    code: str
    created_at: datetime
    expires_at: datetime
    payload: RegistrationPayload | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class NewUser:
    """Fields required to create a user; the password is already hashed."""

    email: str
    first_name: str
    last_name: str
    password_hash: str
    is_admin: bool = False

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class User:
    """
    Credential store entity.

    Assigning a plaintext via set_password() marks the entity so that the
    repository re-hashes on save. Saving without a new plaintext writes the
    stored hash back untouched.
    """

    id: UUID
    email: str
    first_name: str
    last_name: str
    password_hash: str = field(repr=False)
    is_admin: bool = False
    is_blocked: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    new_password: str | None = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def password_changed(self) -> bool:
        return self.new_password is not None

    def set_password(self, password: str) -> None:
        self.new_password = password


@dataclass(frozen=True)
class UserPage:
    users: list[User]
    page: int
    pages: int
    total: int


@dataclass(frozen=True)
class PaymentResult:
    """Provider confirmation stored on an order once its signature checks out."""

    id: str
    status: str
    update_time: str
    email_address: str
