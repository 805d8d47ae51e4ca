"""HMAC request signing shared by the outbound client and the inbound S2S check.

Canonical string: METHOD + path + timestamp + nonce + raw body, no separators,
UTF-8. Signature: HMAC-SHA256 over it, lowercase hex.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from paperpay.common.errors import PaymentConfigurationError


HEADER_API_KEY = "x-api-key"
HEADER_TIMESTAMP = "x-timestamp"
HEADER_NONCE = "x-nonce"
HEADER_SIGNATURE = "x-signature"
HEADER_IDEMPOTENCY_KEY = "Idempotency-Key"


def canonical_string(method: str, path: str, timestamp: int | str, nonce: str, body: bytes) -> bytes:
    """Exact bytes both sides feed into the MAC."""

    prefix = f"{method.upper()}{path}{timestamp}{nonce}"
    return prefix.encode("utf-8") + body


def compute_signature(
    secret: str,
    method: str,
    path: str,
    timestamp: int | str,
    nonce: str,
    body: bytes,
) -> str:
    """Lowercase hex HMAC-SHA256 of the canonical string."""

    message = canonical_string(method, path, timestamp, nonce, body)
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signatures_match(received: str, expected: str) -> bool:
    """Constant-time comparison; received value is trimmed and lowercased."""

    return hmac.compare_digest(received.strip().lower().encode("utf-8"), expected.encode("utf-8"))


def new_idempotency_key() -> str:
    return str(uuid4())


def new_nonce() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class SignedRequestEnvelope:
    """Per-attempt signing material. Never persisted."""

    api_key: str
    nonce: str
    timestamp: int
    idempotency_key: str
    signature: str

    def headers(self) -> dict[str, str]:
        return {
            HEADER_API_KEY: self.api_key,
            HEADER_TIMESTAMP: str(self.timestamp),
            HEADER_NONCE: self.nonce,
            HEADER_SIGNATURE: self.signature,
            HEADER_IDEMPOTENCY_KEY: self.idempotency_key,
        }


class RequestSigner:
    """Holds the caller API key and shared HMAC secret for outbound requests."""

    def __init__(
        self,
        api_key: str | None,
        hmac_secret: str | None,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = new_nonce,
    ) -> None:
        self._api_key = api_key
        self._hmac_secret = hmac_secret
        self._clock = clock
        self._nonce_factory = nonce_factory

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._api_key.strip() and self._hmac_secret and self._hmac_secret.strip())

    def ensure_configured(self) -> None:
        """Raise when credentials are absent. This is a deployment fault, not a transient one."""

        if not self.configured:
            raise PaymentConfigurationError(
                "payment server signing credentials are not configured; set "
                "PAYMENT_SERVER__API_KEY and PAYMENT_SERVER__HMAC_SECRET "
                "(or OUTBOUND_PAYMENT_KEY and OUTBOUND_PAYMENT_SECRET)"
            )

    def sign(self, method: str, path: str, body: bytes, idempotency_key: str) -> SignedRequestEnvelope:
        """Sign one physical send with a fresh nonce and timestamp."""

        self.ensure_configured()
        timestamp = int(self._clock())
        nonce = self._nonce_factory()
        signature = compute_signature(self._hmac_secret, method, path, timestamp, nonce, body)
        return SignedRequestEnvelope(
            api_key=self._api_key,
            nonce=nonce,
            timestamp=timestamp,
            idempotency_key=idempotency_key,
            signature=signature,
        )
