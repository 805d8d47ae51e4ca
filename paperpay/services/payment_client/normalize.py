"""Turn a raw payment-server success body into a `PaymentIntentResult`."""

import json
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from paperpay.common.errors import InvalidPaymentResponseError
from paperpay.services.payment_client.schemas import (
    PaymentIntentRequest,
    PaymentIntentResult,
    PaymentServerIntentResponse,
)


def _field(fields: dict[str, Any], key: str) -> str:
    value = fields.get(key)
    if value is None:
        return ""
    return str(value)


def _parse_amount(raw: str, fallback: Decimal) -> Decimal:
    if not raw.strip():
        return fallback
    try:
        amount = Decimal(raw.strip())
    except InvalidOperation:
        return fallback
    if not amount.is_finite():
        return fallback
    return amount


def normalize_intent_response(body: str, request: PaymentIntentRequest) -> PaymentIntentResult:
    """Parse fields by key; reject bodies the payer could not be redirected with."""

    if not body or not body.strip():
        raise InvalidPaymentResponseError("empty response body", body)
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidPaymentResponseError(f"body is not JSON: {exc.msg}", body) from exc
    if not isinstance(data, dict):
        raise InvalidPaymentResponseError("body is not a JSON object", body)
    try:
        intent = PaymentServerIntentResponse.model_validate(data)
    except ValidationError as exc:
        raise InvalidPaymentResponseError("unexpected response shape", body) from exc

    fields = intent.fields
    if not fields:
        raise InvalidPaymentResponseError("missing fields", body)

    merchant_id = _field(fields, "merchant_id")
    hash_value = _field(fields, "hash")
    if not merchant_id.strip() or not hash_value.strip():
        raise InvalidPaymentResponseError("missing merchant_id/hash", body)

    return PaymentIntentResult(
        success=True,
        merchant_id=merchant_id,
        amount=_parse_amount(_field(fields, "amount"), request.amount),
        hash=hash_value,
        notify_url=_field(fields, "notify_url"),
        cancel_url=_field(fields, "cancel_url"),
        return_url=_field(fields, "return_url"),
        email=_field(fields, "email"),
        order_id=_field(fields, "order_id"),
        currency=_field(fields, "currency") or request.currency,
        items=_field(fields, "items"),
        first_name=_field(fields, "first_name"),
        last_name=_field(fields, "last_name"),
    )
