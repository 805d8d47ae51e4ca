"""Wire and result models for the payment-server intent exchange."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class PaymentIntentRequest(BaseModel):
    """Body of `POST /api/v1/payments/intents`, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: str = Field(min_length=1)
    paper_id: str = ""
    payment_id: str = Field(min_length=1)
    # 15 significant digits survive the JSON number exactly.
    amount: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    currency: str = Field(min_length=1)
    user_id: str = ""
    user_name: str = ""
    email: str = ""

    @field_validator("order_id", "payment_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)

    def to_wire(self) -> bytes:
        """Serialized body; these exact bytes are signed and sent."""

        return self.model_dump_json(by_alias=True).encode("utf-8")


class PaymentServerIntentResponse(BaseModel):
    """Raw intent response as returned by the payment server."""

    gateway: str | None = None
    action: str | None = None
    url: str | None = None
    fields: dict[str, Any] | None = None


class PaymentIntentResult(BaseModel):
    """Normalized gateway redirect fields handed back to the checkout flow."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    merchant_id: str = ""
    amount: Decimal
    hash: str = ""
    notify_url: str = ""
    cancel_url: str = ""
    return_url: str = ""
    email: str = ""
    order_id: str = ""
    currency: str = ""
    items: str = ""
    first_name: str = ""
    last_name: str = ""

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)
