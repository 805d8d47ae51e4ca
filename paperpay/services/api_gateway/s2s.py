"""Server-to-server signature verification for inbound requests.

Mirrors the outbound signing contract: the caller signs
METHOD + path + query + timestamp + nonce + raw body with one of the shared
HMAC secrets.
"""

import time
from typing import Callable, Mapping, Protocol

import redis

from paperpay.common.errors import S2SAuthenticationError
from paperpay.common.logging import logger
from paperpay.services.payment_client.signing import (
    HEADER_API_KEY,
    HEADER_NONCE,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    compute_signature,
    signatures_match,
)


class NonceStore(Protocol):
    def claim(self, nonce: str, ttl_seconds: int) -> bool:
        """Record `nonce`; False when it was already seen within the TTL."""


class RedisNonceStore:
    """Nonce replay guard backed by Redis `SET NX EX`."""

    def __init__(self, client: redis.Redis, prefix: str = "s2s:nonce:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisNonceStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def claim(self, nonce: str, ttl_seconds: int) -> bool:
        return bool(self.client.set(f"{self.prefix}{nonce}", "1", nx=True, ex=ttl_seconds))


class S2SVerifier:
    """Validates x-api-key / x-timestamp / x-nonce / x-signature headers."""

    def __init__(
        self,
        api_keys: list[str],
        hmac_secrets: list[str],
        max_skew_seconds: int = 300,
        nonce_store: NonceStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.api_keys = api_keys
        self.hmac_secrets = hmac_secrets
        self.max_skew_seconds = max_skew_seconds
        self.nonce_store = nonce_store
        self.clock = clock

    def verify(self, method: str, path_and_query: str, headers: Mapping[str, str], body: bytes) -> str:
        """Return the authenticated API key or raise `S2SAuthenticationError`."""

        api_key = (headers.get(HEADER_API_KEY) or "").strip()
        signature = (headers.get(HEADER_SIGNATURE) or "").strip()
        timestamp = (headers.get(HEADER_TIMESTAMP) or "").strip()
        nonce = (headers.get(HEADER_NONCE) or "").strip()

        if not (api_key and signature and timestamp and nonce):
            raise S2SAuthenticationError("missing headers")
        if not self.api_keys or not self.hmac_secrets:
            raise S2SAuthenticationError("not configured")
        if api_key not in self.api_keys:
            raise S2SAuthenticationError("invalid api key")

        try:
            ts = int(timestamp)
        except ValueError as exc:
            raise S2SAuthenticationError("invalid timestamp") from exc
        if abs(int(self.clock()) - ts) > self.max_skew_seconds:
            raise S2SAuthenticationError("expired")

        if not any(
            signatures_match(signature, compute_signature(secret, method, path_and_query, timestamp, nonce, body))
            for secret in self.hmac_secrets
        ):
            raise S2SAuthenticationError("signature mismatch")

        if self.nonce_store is not None:
            try:
                fresh = self.nonce_store.claim(nonce, self.max_skew_seconds * 2)
            except redis.RedisError as exc:
                logger.warning("s2s_nonce_store_unavailable: %s", exc)
                fresh = True
            if not fresh:
                raise S2SAuthenticationError("replayed nonce")

        return api_key
