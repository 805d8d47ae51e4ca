"""Create one signed payment intent against a payment server.

Useful for checking signing credentials and the retry path by hand. Reads
payment-server settings from the environment like the gateway does.
"""

import argparse
import asyncio
import json
from uuid import uuid4

from paperpay.common.config import settings
from paperpay.common.errors import PaymentClientError
from paperpay.common.logging import configure_logging
from paperpay.services.checkout.service import new_order_id
from paperpay.services.payment_client.client import PaymentServerClient
from paperpay.services.payment_client.schemas import PaymentIntentRequest


async def create(request: PaymentIntentRequest, idempotency_key: str | None) -> dict:
    """Send one intent and return the normalized result as camelCase JSON."""

    async with PaymentServerClient.from_settings(settings) as client:
        result = await client.create_payment_intent(request, idempotency_key=idempotency_key)
    return json.loads(result.model_dump_json(by_alias=True))


def main() -> None:
    """Parse CLI args and create one payment intent."""

    parser = argparse.ArgumentParser(description="Create a signed payment intent.")
    parser.add_argument("--amount", required=True)
    parser.add_argument("--currency", default="LKR")
    parser.add_argument("--paper-id", default="")
    parser.add_argument("--order-id", default=None, help="Defaults to a random uppercase hex id")
    parser.add_argument("--payment-id", default=None)
    parser.add_argument("--user-id", default="manual")
    parser.add_argument("--user-name", default="Customer")
    parser.add_argument("--email", default=settings.default_user_email)
    parser.add_argument("--idempotency-key", default=None)
    args = parser.parse_args()

    configure_logging()
    request = PaymentIntentRequest(
        order_id=args.order_id or new_order_id(),
        paper_id=args.paper_id,
        payment_id=args.payment_id or str(uuid4()),
        amount=args.amount,
        currency=args.currency,
        user_id=args.user_id,
        user_name=args.user_name,
        email=args.email,
    )
    try:
        payload = asyncio.run(create(request, args.idempotency_key))
    except PaymentClientError as exc:
        raise SystemExit(f"{exc.error_type}: {exc}") from exc
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
