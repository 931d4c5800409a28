"""
API v1 order routes.
"""

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_current_user, get_payment_service
from storefront.api.errors import to_http_exception
from storefront.api.models import ErrorResponse, MessageResponse, VerifyPaymentRequest
from storefront.domain.exceptions import StorefrontError
from storefront.domain.models import User
from storefront.domain.payments import PaymentVerificationService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/verify-payment",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid signature"},
        404: {"model": ErrorResponse, "description": "Order not found"},
    },
    summary="Verify a Razorpay payment",
    description="Checks the Razorpay signature and marks the order paid. "
    "Safe to repeat for the same payment.",
)
def verify_payment(
    request_data: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    service: PaymentVerificationService = Depends(get_payment_service),
) -> MessageResponse:
    try:
        service.verify_payment(
            provider_order_ref=request_data.razorpay_order_id,
            provider_payment_ref=request_data.razorpay_payment_id,
            provider_signature=request_data.razorpay_signature,
            order_id=request_data.order_id,
            payer_email=user.email,
        )
    except StorefrontError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Payment verified successfully")
