"""Signed, retrying client for the external payment server.

One logical intent creation holds a single idempotency key across up to
`max_attempts` sequential sends. Every send is re-signed with a fresh nonce
and timestamp. Timeouts, network errors and 5xx are retried with linear
backoff; 4xx and malformed 2xx bodies fail immediately.
"""

import asyncio
from types import TracebackType
from typing import Awaitable, Callable, Optional, Type
from urllib.parse import quote

import httpx

from paperpay.common.config import CommonSettings, settings
from paperpay.common.errors import (
    PaymentClientError,
    PaymentServerRejectedError,
    PaymentServerUnavailableError,
)
from paperpay.common.logging import logger, payment_context
from paperpay.common.metrics import (
    payment_intent_attempts_total,
    payment_intent_failures_total,
    payment_intent_latency_seconds,
    payment_intent_requests_total,
    retries_total,
)
from paperpay.common.tracing import payment_server_span
from paperpay.services.payment_client.normalize import normalize_intent_response
from paperpay.services.payment_client.schemas import PaymentIntentRequest, PaymentIntentResult
from paperpay.services.payment_client.signing import RequestSigner, new_idempotency_key


INTENTS_PATH = "/api/v1/payments/intents"
VERIFY_PATH = "/api/payment/verify/{order_id}"

OUTCOME_SUCCESS = "SUCCESS"
OUTCOME_REJECTED = "REJECTED"
OUTCOME_SERVER_ERROR = "SERVER_ERROR"
OUTCOME_NETWORK_ERROR = "NETWORK_ERROR"
RETRYABLE_OUTCOMES = frozenset({OUTCOME_SERVER_ERROR, OUTCOME_NETWORK_ERROR})


def classify_status(status_code: int) -> str:
    """Map an HTTP status to an attempt outcome."""

    if 200 <= status_code < 300:
        return OUTCOME_SUCCESS
    if status_code >= 500:
        return OUTCOME_SERVER_ERROR
    return OUTCOME_REJECTED


class PaymentServerClient:
    """Creates payment intents on the payment server.

    The `httpx.AsyncClient` is reused across calls; pass one in to share a
    pool, otherwise the client owns and closes its own.
    """

    def __init__(
        self,
        base_url: str,
        signer: RequestSigner,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_step_seconds: float = 0.25,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        service_name: str | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._base_url = base_url.rstrip("/")
        self._signer = signer
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff_step_seconds = backoff_step_seconds
        self._sleep = sleep
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self.service_name = service_name or settings.service_name

    @classmethod
    def from_settings(cls, config: CommonSettings = settings, **kwargs) -> "PaymentServerClient":
        """Build a client from structured settings, flat keys filling the gaps."""

        server = config.resolved_payment_server()
        signer = RequestSigner(server.api_key, server.hmac_secret)
        kwargs.setdefault("timeout", server.timeout_seconds)
        kwargs.setdefault("max_attempts", server.max_attempts)
        kwargs.setdefault("backoff_step_seconds", server.backoff_step_seconds)
        return cls(server.url, signer, **kwargs)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def send_signed_request(
        self,
        method: str,
        path: str,
        body: bytes,
        idempotency_key: str,
    ) -> httpx.Response:
        """Sign and send one request.

        The signed path is taken from the built URL so it matches what the
        server sees, query string included.
        """

        request = self._client.build_request(
            method.upper(),
            self._url(path),
            content=body,
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        envelope = self._signer.sign(method, request.url.raw_path.decode("ascii"), body, idempotency_key)
        request.headers.update(envelope.headers())
        return await self._client.send(request)

    async def create_payment_intent(
        self,
        request: PaymentIntentRequest,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """Create one payment intent and return the normalized redirect fields."""

        self._signer.ensure_configured()
        body = request.to_wire()
        idempotency_key = idempotency_key or new_idempotency_key()
        payment_intent_requests_total.labels(service=self.service_name).inc()
        with payment_context(request.order_id, idempotency_key), payment_server_span(
            "create_intent",
            order_id=request.order_id,
            idempotency_key=idempotency_key,
        ):
            logger.info(
                "creating payment intent order_id=%s amount=%s currency=%s idempotency_key=%s",
                request.order_id,
                request.amount,
                request.currency,
                idempotency_key,
            )
            try:
                with payment_intent_latency_seconds.labels(service=self.service_name).time():
                    result = await self._send_with_retry(request, body, idempotency_key)
            except PaymentClientError as exc:
                payment_intent_failures_total.labels(
                    service=self.service_name,
                    error_type=exc.error_type,
                ).inc()
                raise
            logger.info(
                "payment intent created order_id=%s merchant_id=%s",
                result.order_id,
                result.merchant_id,
            )
        return result

    async def _send_with_retry(
        self,
        request: PaymentIntentRequest,
        body: bytes,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        last_status: int | None = None
        last_body = ""
        last_error: str | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self.send_signed_request("POST", INTENTS_PATH, body, idempotency_key)
            except httpx.TransportError as exc:
                outcome = OUTCOME_NETWORK_ERROR
                last_status, last_body = None, ""
                last_error = f"{type(exc).__name__}: {exc}"
            else:
                outcome = classify_status(response.status_code)
                last_status, last_body, last_error = response.status_code, response.text, None

            payment_intent_attempts_total.labels(service=self.service_name, outcome=outcome).inc()
            logger.info(
                "payment server attempt=%s/%s idempotency_key=%s outcome=%s status=%s error=%s",
                attempt,
                self._max_attempts,
                idempotency_key,
                outcome,
                last_status,
                last_error,
            )

            if outcome == OUTCOME_SUCCESS:
                return normalize_intent_response(response.text, request)
            if outcome == OUTCOME_REJECTED:
                logger.error(
                    "payment server rejected request status=%s idempotency_key=%s body=%s",
                    response.status_code,
                    idempotency_key,
                    response.text,
                )
                raise PaymentServerRejectedError(response.status_code, response.text)

            if attempt < self._max_attempts:
                backoff_seconds = self._backoff_step_seconds * attempt
                retries_total.labels(service=self.service_name, dependency="payment-server").inc()
                logger.warning(
                    "payment server transient failure attempt=%s idempotency_key=%s backoff_s=%s",
                    attempt,
                    idempotency_key,
                    backoff_seconds,
                )
                await self._sleep(backoff_seconds)

        logger.error(
            "payment server retries exhausted attempts=%s idempotency_key=%s status=%s error=%s",
            self._max_attempts,
            idempotency_key,
            last_status,
            last_error,
        )
        raise PaymentServerUnavailableError(self._max_attempts, last_status, last_body, last_error)

    async def verify_payment(self, order_id: str) -> bool:
        """Ask the payment server whether an order is paid. Errors read as False."""

        try:
            with payment_server_span("verify_payment", order_id=order_id):
                response = await self._client.get(
                    self._url(VERIFY_PATH.format(order_id=quote(order_id, safe=""))),
                    timeout=self._timeout,
                )
        except httpx.HTTPError as exc:
            logger.error("payment verification failed order_id=%s error=%s", order_id, exc)
            return False
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PaymentServerClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
