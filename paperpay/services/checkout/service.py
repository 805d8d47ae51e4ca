"""Card checkout flow and gateway notification verification."""

import hashlib
import hmac
from typing import Awaitable, Callable
from uuid import uuid4

from paperpay.common.logging import logger
from paperpay.services.checkout.schemas import (
    CardPaymentRequest,
    GatewayPaymentDetails,
    PaymentResponse,
    UserProfile,
)
from paperpay.services.payment_client.client import PaymentServerClient
from paperpay.services.payment_client.schemas import PaymentIntentRequest


ProfileLookup = Callable[[str], Awaitable[UserProfile | None]]

DEFAULT_USER_NAME = "Customer"
GATEWAY_STATUS_SUCCESS = "2"


async def no_profile(user_id: str) -> UserProfile | None:
    del user_id
    return None


def new_order_id() -> str:
    return uuid4().hex.upper()


def gateway_callback_signature(
    merchant_id: str,
    order_id: str,
    amount: str,
    currency: str,
    status_code: str,
    merchant_secret: str,
) -> str:
    """Uppercase MD5 the gateway attaches to its notify callback as `md5sig`."""

    raw = f"{merchant_id}{order_id}{amount}{currency}{status_code}{merchant_secret}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest().upper()


class CheckoutService:
    """Turns a storefront card payment into a payment-server intent."""

    def __init__(
        self,
        payment_client: PaymentServerClient,
        profile_lookup: ProfileLookup = no_profile,
        default_email: str = "customer@example.com",
        merchant_id: str = "",
        merchant_secret: str = "",
    ) -> None:
        self.payment_client = payment_client
        self.profile_lookup = profile_lookup
        self.default_email = default_email
        self.merchant_id = merchant_id
        self.merchant_secret = merchant_secret

    async def initiate_card_payment(self, req: CardPaymentRequest, user_id: str) -> PaymentResponse:
        """Create a gateway-ready payment for one checkout attempt."""

        order_id = new_order_id()
        logger.info(
            "creating payment order order_id=%s user_id=%s amount=%s currency=%s",
            order_id,
            user_id,
            req.amount,
            req.currency,
        )

        profile = await self.profile_lookup(user_id)
        user_name = ((profile.full_name if profile else None) or "").strip() or DEFAULT_USER_NAME
        email = ((profile.email if profile else None) or "").strip() or self.default_email

        paper_ids = req.resolved_paper_ids()
        paper_id = paper_ids[0] if paper_ids else req.paper_id

        result = await self.payment_client.create_payment_intent(
            PaymentIntentRequest(
                order_id=order_id,
                paper_id=paper_id,
                payment_id=req.payment_id,
                amount=req.amount,
                currency=req.currency,
                user_id=user_id,
                user_name=user_name,
                email=email,
            )
        )

        name_parts = user_name.split()
        details = GatewayPaymentDetails(
            merchant_id=result.merchant_id,
            amount=result.amount,
            hash=result.hash,
            notify_url=result.notify_url,
            cancel_url=result.cancel_url,
            return_url=result.return_url,
            email=result.email.strip() or email,
            order_id=result.order_id,
            currency=result.currency,
            items=result.items.strip() or f"Paper {paper_id}",
            first_name=result.first_name.strip() or (name_parts[0] if name_parts else DEFAULT_USER_NAME),
            last_name=result.last_name.strip() or (name_parts[1] if len(name_parts) > 1 else ""),
        )
        return PaymentResponse(
            success=True,
            transaction_id=order_id,
            message="Payment order created successfully",
            payment_details=details,
        )

    def verify_gateway_callback(self, data: dict[str, str]) -> bool:
        """Check merchant id and `md5sig` of a gateway notify callback."""

        merchant_id = data.get("merchant_id", "")
        order_id = data.get("order_id", "")
        if not self.merchant_id or merchant_id != self.merchant_id:
            logger.warning("invalid merchant id in gateway callback merchant_id=%s", merchant_id)
            return False

        expected = gateway_callback_signature(
            merchant_id,
            order_id,
            data.get("payhere_amount", ""),
            data.get("payhere_currency", ""),
            data.get("status_code", ""),
            self.merchant_secret,
        )
        received = data.get("md5sig", "").strip().upper()
        if not hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("invalid gateway callback signature order_id=%s", order_id)
            return False

        logger.info("gateway callback verified order_id=%s", order_id)
        return True
