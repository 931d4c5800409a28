"""
API v1 auth routes.

OTP-gated registration and password reset, login, profile, and the admin
user-management endpoints. Handlers are plain functions so FastAPI runs
them in its threadpool; a client disconnect does not interrupt a database
write that has already started.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from storefront.api.dependencies import (
    get_account_service,
    get_basic_auth_credentials,
    get_current_admin,
    get_current_user,
    get_otp_service,
)
from storefront.api.errors import to_http_exception
from storefront.api.models import (
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SendRegistrationOtpRequest,
    UpdateProfileRequest,
    UserListResponse,
    UserProfile,
    UserSummary,
    VerifyOtpRequest,
    VerifyRegistrationResponse,
)
from storefront.domain.accounts import AccountService
from storefront.domain.exceptions import StorefrontError
from storefront.domain.models import OtpPurpose, User
from storefront.domain.otp import OtpService, PendingRegistration

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/send-registration-otp",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "User already exists or invalid input"}},
    summary="Send a registration code",
    description="Submit the sign-up form. A 6-digit code valid for 10 minutes is emailed; "
    "the account is created only once the code is verified.",
)
def send_registration_otp(
    request_data: SendRegistrationOtpRequest,
    service: OtpService = Depends(get_otp_service),
) -> MessageResponse:
    registration = PendingRegistration(
        first_name=request_data.first_name,
        last_name=request_data.last_name,
        password=request_data.password,
    )
    try:
        service.request_code(request_data.email, OtpPurpose.REGISTRATION, registration)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="OTP sent to your email")


@router.post(
    "/verify-registration-otp",
    response_model=VerifyRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired OTP"}},
    summary="Verify a registration code",
    description="Creates the account. No session is issued; log in afterwards.",
)
def verify_registration_otp(
    request_data: VerifyOtpRequest,
    service: OtpService = Depends(get_otp_service),
) -> VerifyRegistrationResponse:
    try:
        email = service.verify_code(request_data.email, OtpPurpose.REGISTRATION, request_data.otp)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return VerifyRegistrationResponse(
        message="Account verified successfully. Please log in.",
        email=email,
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Send a password reset code",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    service: OtpService = Depends(get_otp_service),
) -> MessageResponse:
    try:
        service.request_code(request_data.email, OtpPurpose.PASSWORD_RESET)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Password reset OTP sent to your email")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired OTP"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
    summary="Reset a password with a code",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: OtpService = Depends(get_otp_service),
) -> MessageResponse:
    try:
        service.verify_code(
            request_data.email,
            OtpPurpose.PASSWORD_RESET,
            request_data.otp,
            new_password=request_data.new_password,
        )
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Password reset successfully")


@router.post(
    "/login",
    response_model=UserProfile,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or wrong role"},
        403: {"model": ErrorResponse, "description": "Account blocked"},
    },
    summary="Log in with HTTP BASIC AUTH",
)
def login(
    request_data: LoginRequest | None = None,
    credentials: tuple[str, str] = Depends(get_basic_auth_credentials),
    accounts: AccountService = Depends(get_account_service),
) -> UserProfile:
    email, password = credentials
    admin_login = request_data.is_admin_login if request_data is not None else False
    try:
        user = accounts.login(email, password, admin_login=admin_login)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return UserProfile.from_user(user)


@router.get("/profile", response_model=UserProfile, summary="Get own profile")
def get_profile(user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.from_user(user)


@router.put("/profile", response_model=UserProfile, summary="Update own profile")
def update_profile(
    request_data: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> UserProfile:
    try:
        updated = accounts.update_profile(
            user,
            first_name=request_data.first_name,
            last_name=request_data.last_name,
            email=request_data.email,
            password=request_data.password,
        )
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return UserProfile.from_user(updated)


@router.get("/users", response_model=UserListResponse, summary="List users (admin)")
def list_users(
    search: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
) -> UserListResponse:
    result = accounts.list_users(search=search, page=page, limit=limit)
    return UserListResponse(
        users=[UserSummary.from_user(user) for user in result.users],
        page=result.page,
        pages=result.pages,
        total=result.total,
    )


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Remove a user (admin)")
def delete_user(
    user_id: UUID,
    _admin: User = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    try:
        accounts.delete_user(user_id)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="User removed")


@router.put("/users/{user_id}/block", response_model=MessageResponse, summary="Block a user (admin)")
def block_user(
    user_id: UUID,
    _admin: User = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    try:
        accounts.block_user(user_id)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="User blocked successfully")


@router.put("/users/{user_id}/unblock", response_model=MessageResponse, summary="Unblock a user (admin)")
def unblock_user(
    user_id: UUID,
    _admin: User = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    try:
        accounts.unblock_user(user_id)
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="User unblocked successfully")
