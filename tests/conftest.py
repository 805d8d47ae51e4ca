"""Shared fixtures for payment-client, checkout and gateway tests."""

import pytest
import pytest_asyncio
import respx

from paperpay.services.api_gateway.s2s import S2SVerifier
from paperpay.services.payment_client.client import PaymentServerClient
from paperpay.services.payment_client.schemas import PaymentIntentRequest
from paperpay.services.payment_client.signing import RequestSigner
from tests.helpers import API_KEY, BASE_URL, FIXED_NOW, HMAC_SECRET, SleepRecorder


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def signer() -> RequestSigner:
    return RequestSigner(API_KEY, HMAC_SECRET, clock=lambda: FIXED_NOW)


@pytest.fixture
def server_verifier() -> S2SVerifier:
    """What the payment server would run against our requests."""

    return S2SVerifier([API_KEY], [HMAC_SECRET], clock=lambda: FIXED_NOW)


@pytest.fixture
def payment_server():
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        yield mock


@pytest_asyncio.fixture
async def client(signer: RequestSigner, sleeps: SleepRecorder):
    async with PaymentServerClient(BASE_URL, signer, sleep=sleeps) as payment_client:
        yield payment_client


@pytest.fixture
def intent_request() -> PaymentIntentRequest:
    return PaymentIntentRequest(
        order_id="ORD-1",
        paper_id="P-1",
        payment_id="PAY-1",
        amount="500.00",
        currency="LKR",
        user_id="U1",
        user_name="Jane",
        email="jane@x.com",
    )
