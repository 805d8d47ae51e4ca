"""Constants and small fakes shared by the test modules."""

import httpx


BASE_URL = "http://payments.test"
INTENTS_URL = f"{BASE_URL}/api/v1/payments/intents"
API_KEY = "backend-key"
HMAC_SECRET = "shared-test-secret"
FIXED_NOW = 1_700_000_000


class SleepRecorder:
    """Stands in for asyncio.sleep so backoff can be asserted without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class InMemoryNonceStore:
    def __init__(self) -> None:
        self.seen: set[str] = set()

    def claim(self, nonce: str, ttl_seconds: int) -> bool:
        if nonce in self.seen:
            return False
        self.seen.add(nonce)
        return True


def intent_body(**fields: str) -> dict:
    return {
        "gateway": "payhere",
        "action": "redirect",
        "url": "https://sandbox.payhere.lk/pay/checkout",
        "fields": fields,
    }


def ok(**fields: str) -> httpx.Response:
    return httpx.Response(200, json=intent_body(**fields))
