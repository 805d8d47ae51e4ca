"""Checkout request/response schemas exposed to the storefront."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardPaymentRequest(CamelModel):
    """Card payment payload accepted from the storefront."""

    amount: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    paper_id: str = ""
    paper_ids: list[str] = Field(default_factory=list)
    currency: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    questions_list: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_paper(self) -> "CardPaymentRequest":
        has_single = bool(self.paper_id.strip())
        has_list = any(p.strip() for p in self.paper_ids)
        if not has_single and not has_list:
            raise ValueError("Either paperId or paperIds must be provided.")
        return self

    def resolved_paper_ids(self) -> list[str]:
        """Trimmed, non-blank, de-duplicated paper ids; list entries first."""

        resolved: list[str] = []
        for paper_id in [*self.paper_ids, self.paper_id]:
            paper_id = paper_id.strip()
            if paper_id and paper_id not in resolved:
                resolved.append(paper_id)
        return resolved


class GatewayPaymentDetails(CamelModel):
    """Fields the storefront posts to the payment gateway."""

    merchant_id: str = ""
    amount: Decimal = Decimal("0")
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


class PaymentResponse(CamelModel):
    success: bool
    transaction_id: str | None = None
    message: str | None = None
    payment_url: str | None = None
    payment_details: GatewayPaymentDetails | None = None


class UserProfile(CamelModel):
    full_name: str | None = None
    email: str | None = None
