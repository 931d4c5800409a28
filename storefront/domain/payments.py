"""
Payment verification domain service.

Confirms a client-reported Razorpay payment before marking the order paid.
The provider signs "<order_ref>|<payment_ref>" with HMAC-SHA256 using the
merchant key secret; the order is only touched once that signature matches.
The update overwrites the paid fields, so repeated callbacks for the same
payment leave the order in the same state.
"""

import hashlib
import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from .exceptions import InvalidSignature, OrderNotFound
from .models import PaymentResult
from .otp import utcnow
from .ports import OrderRepository

logger = logging.getLogger(__name__)

PAID_STATUS = "paid"


def compute_signature(secret: str, provider_order_ref: str, provider_payment_ref: str) -> str:
    """Hex HMAC-SHA256 over "<order_ref>|<payment_ref>"."""
    message = f"{provider_order_ref}|{provider_payment_ref}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


@dataclass
class PaymentVerificationService:
    orders: OrderRepository
    key_secret: str
    clock: Callable[[], datetime] = utcnow

    def verify_payment(
        self,
        provider_order_ref: str,
        provider_payment_ref: str,
        provider_signature: str,
        order_id: UUID,
        payer_email: str,
    ) -> None:
        """
        Verify the provider signature and mark the order paid.

        Raises:
            InvalidSignature: Signature mismatch; nothing is written
            OrderNotFound: Signature valid but no order with order_id
        """
        if not self.key_secret:
            logger.error("Payment verification attempted without a provider key secret")
            raise InvalidSignature(str(order_id))

        expected = compute_signature(self.key_secret, provider_order_ref, provider_payment_ref)
        if not hmac.compare_digest(expected.encode(), (provider_signature or "").encode()):
            logger.warning(
                "Payment signature mismatch: order_ref=%s payment_ref=%s received=%s local_order=%s",
                provider_order_ref,
                provider_payment_ref,
                provider_signature,
                order_id,
            )
            raise InvalidSignature(str(order_id))

        now = self.clock()
        result = PaymentResult(
            id=provider_payment_ref,
            status=PAID_STATUS,
            update_time=now.isoformat(),
            email_address=payer_email,
        )
        if not self.orders.mark_paid(order_id, now, result):
            logger.error("Order not found for verified payment %s: %s", provider_payment_ref, order_id)
            raise OrderNotFound(str(order_id))

        logger.info("Payment %s verified for order %s", provider_payment_ref, order_id)
