"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from storefront.domain.models import User

OTP_PATTERN = r"^\d{6}$"


class SendRegistrationOtpRequest(BaseModel):
    """Request model for starting a registration."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128, description="User password (min 8 characters)")


class VerifyOtpRequest(BaseModel):
    """Request model for completing a registration."""

    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN, description="6-digit code from the email")


class ForgotPasswordRequest(BaseModel):
    """Request model for starting a password reset."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request model for completing a password reset."""

    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN, description="6-digit code from the email")
    new_password: str = Field(..., min_length=8, max_length=128)


class MessageResponse(BaseModel):
    message: str


class VerifyRegistrationResponse(BaseModel):
    """Response model for a verified registration. No token is issued."""

    message: str
    email: str


class LoginRequest(BaseModel):
    is_admin_login: bool = False


class UserProfile(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    name: str
    email: str
    is_admin: bool

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            name=user.name,
            email=user.email,
            is_admin=user.is_admin,
        )


class UpdateProfileRequest(BaseModel):
    """Only non-empty fields are applied."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)


class UserSummary(UserProfile):
    is_blocked: bool
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            name=user.name,
            email=user.email,
            is_admin=user.is_admin,
            is_blocked=user.is_blocked,
            created_at=user.created_at,
        )


class UserListResponse(BaseModel):
    users: list[UserSummary]
    page: int
    pages: int
    total: int


class VerifyPaymentRequest(BaseModel):
    """Client-reported Razorpay checkout result."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    order_id: UUID


class ValidationErrorDetail(BaseModel):
    type: str
    loc: list[str | int]
    msg: str


class ErrorResponse(BaseModel):
    """
    Standard error response model.

    Domain errors carry a message string; request validation failures
    carry one entry per invalid field.
    """

    detail: str | list[ValidationErrorDetail]
