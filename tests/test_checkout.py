"""Checkout service: payer fallbacks, paper ids and gateway callback checks."""

import hashlib
from decimal import Decimal

import pytest
from pydantic import ValidationError

from paperpay.common.errors import PaymentServerUnavailableError
from paperpay.services.checkout.schemas import CardPaymentRequest, UserProfile
from paperpay.services.checkout.service import CheckoutService, gateway_callback_signature
from paperpay.services.payment_client.schemas import PaymentIntentRequest, PaymentIntentResult


class StubPaymentClient:
    def __init__(self, result: PaymentIntentResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.requests: list[PaymentIntentRequest] = []

    async def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntentResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


def profile_lookup(profile: UserProfile | None):
    async def lookup(user_id: str) -> UserProfile | None:
        return profile

    return lookup


def card_request(**overrides) -> CardPaymentRequest:
    payload = {"amount": "1500.00", "paperId": "P-9", "currency": "LKR", "paymentId": "PAY-9"}
    payload.update(overrides)
    return CardPaymentRequest.model_validate(payload)


def bare_result(**overrides) -> PaymentIntentResult:
    values = {"merchant_id": "M1", "hash": "HASH", "amount": Decimal("1500.00"), "currency": "LKR", "order_id": "X"}
    values.update(overrides)
    return PaymentIntentResult(**values)


@pytest.mark.asyncio
async def test_profile_values_flow_into_intent_and_details():
    stub = StubPaymentClient(bare_result())
    service = CheckoutService(stub, profile_lookup(UserProfile(full_name=" Jane Perera ", email=" jane@x.com ")))

    response = await service.initiate_card_payment(card_request(), "U1")

    sent = stub.requests[0]
    assert sent.user_id == "U1"
    assert sent.user_name == "Jane Perera"
    assert sent.email == "jane@x.com"
    assert sent.paper_id == "P-9"
    assert sent.payment_id == "PAY-9"
    assert sent.order_id == response.transaction_id
    assert len(sent.order_id) == 32
    assert sent.order_id == sent.order_id.upper()

    details = response.payment_details
    assert response.success is True
    assert response.message == "Payment order created successfully"
    assert details.merchant_id == "M1"
    assert details.email == "jane@x.com"
    assert details.items == "Paper P-9"
    assert details.first_name == "Jane"
    assert details.last_name == "Perera"


@pytest.mark.asyncio
async def test_missing_profile_falls_back_to_defaults():
    stub = StubPaymentClient(bare_result())
    service = CheckoutService(stub, default_email="fallback@example.com")

    response = await service.initiate_card_payment(card_request(), "U1")

    assert stub.requests[0].user_name == "Customer"
    assert stub.requests[0].email == "fallback@example.com"
    assert response.payment_details.first_name == "Customer"
    assert response.payment_details.last_name == ""


@pytest.mark.asyncio
async def test_server_values_win_over_local_fallbacks():
    stub = StubPaymentClient(
        bare_result(email="server@x.com", items="Physics 2024", first_name="J", last_name="P")
    )
    service = CheckoutService(stub, profile_lookup(UserProfile(full_name="Jane Perera")))

    details = (await service.initiate_card_payment(card_request(), "U1")).payment_details

    assert (details.email, details.items, details.first_name, details.last_name) == (
        "server@x.com",
        "Physics 2024",
        "J",
        "P",
    )


@pytest.mark.asyncio
async def test_first_deduplicated_paper_id_is_sent():
    stub = StubPaymentClient(bare_result())
    service = CheckoutService(stub)

    await service.initiate_card_payment(card_request(paperId="P-2", paperIds=[" P-1 ", "", "P-2", "P-1"]), "U1")

    assert stub.requests[0].paper_id == "P-1"


def test_card_request_needs_some_paper():
    with pytest.raises(ValidationError):
        card_request(paperId="  ", paperIds=["", " "])


def test_card_request_rejects_non_positive_amount():
    with pytest.raises(ValidationError):
        card_request(amount="0")


@pytest.mark.asyncio
async def test_client_errors_propagate():
    stub = StubPaymentClient(error=PaymentServerUnavailableError(3, last_status=503))
    service = CheckoutService(stub)

    with pytest.raises(PaymentServerUnavailableError):
        await service.initiate_card_payment(card_request(), "U1")


def callback(secret: str = "merchant-secret", **overrides) -> dict[str, str]:
    data = {
        "merchant_id": "1211149",
        "order_id": "ORDER1",
        "payhere_amount": "1500.00",
        "payhere_currency": "LKR",
        "status_code": "2",
    }
    data.update(overrides)
    data.setdefault(
        "md5sig",
        gateway_callback_signature(
            data["merchant_id"],
            data["order_id"],
            data["payhere_amount"],
            data["payhere_currency"],
            data["status_code"],
            secret,
        ),
    )
    return data


def test_gateway_callback_signature_is_uppercase_md5():
    signature = gateway_callback_signature("m", "o", "1.00", "LKR", "2", "s")

    assert signature == hashlib.md5(b"mo1.00LKR2s").hexdigest().upper()


def test_valid_gateway_callback_is_accepted():
    service = CheckoutService(StubPaymentClient(), merchant_id="1211149", merchant_secret="merchant-secret")

    assert service.verify_gateway_callback(callback()) is True
    assert service.verify_gateway_callback({**callback(), "md5sig": callback()["md5sig"].lower()}) is True


@pytest.mark.parametrize(
    "data",
    [
        callback(merchant_id="999"),
        callback(secret="wrong-secret"),
        {**callback(), "payhere_amount": "1.00"},
        {key: value for key, value in callback().items() if key != "md5sig"},
    ],
)
def test_invalid_gateway_callback_is_rejected(data):
    service = CheckoutService(StubPaymentClient(), merchant_id="1211149", merchant_secret="merchant-secret")

    assert service.verify_gateway_callback(data) is False
