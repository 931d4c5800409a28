"""
HTTP error translation.

Domain exceptions become HTTPException with fixed, generic messages; the
original exception text (emails, ids) is never echoed back. Request
validation failures are reported as 400.
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.domain.exceptions import (
    AccountBlocked,
    AdminAccountProtected,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidOrExpiredCode,
    InvalidSignature,
    MissingFields,
    OrderNotFound,
    StorefrontError,
    UserNotFound,
)

_ERRORS: dict[type[StorefrontError], tuple[int, str | None]] = {
    MissingFields: (status.HTTP_400_BAD_REQUEST, "All fields are required"),
    EmailAlreadyRegistered: (status.HTTP_400_BAD_REQUEST, "User already exists"),
    InvalidOrExpiredCode: (status.HTTP_400_BAD_REQUEST, "Invalid or expired OTP"),
    InvalidSignature: (status.HTTP_400_BAD_REQUEST, "Invalid signature sent!"),
    AdminAccountProtected: (status.HTTP_400_BAD_REQUEST, None),
    UserNotFound: (status.HTTP_404_NOT_FOUND, "User not found"),
    OrderNotFound: (status.HTTP_404_NOT_FOUND, "Order not found"),
    # Role messages carry no account data, so they are passed through
    InvalidCredentials: (status.HTTP_401_UNAUTHORIZED, None),
    AccountBlocked: (
        status.HTTP_403_FORBIDDEN,
        "Your account has been blocked by admin. Please contact support.",
    ),
}


def to_http_exception(exc: StorefrontError) -> HTTPException:
    """Map a domain exception to its HTTP status and public message."""
    for error_type, (status_code, detail) in _ERRORS.items():
        if isinstance(exc, error_type):
            headers = {"WWW-Authenticate": "Basic"} if status_code == 401 else None
            return HTTPException(status_code=status_code, detail=detail or str(exc), headers=headers)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")


# Only these keys are returned; "input" and "ctx" can carry submitted passwords
_PUBLIC_ERROR_KEYS = ("type", "loc", "msg")


def public_validation_errors(exc: RequestValidationError) -> list[dict]:
    return [{key: error[key] for key in _PUBLIC_ERROR_KEYS if key in error} for error in exc.errors()]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(public_validation_errors(exc))},
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
