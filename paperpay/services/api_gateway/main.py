"""Public entrypoint for card checkout.

The gateway verifies server-to-server signatures, creates payment intents on
the payment server and accepts the payment gateway's notify callback.
"""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from paperpay.common.config import settings, split_secrets
from paperpay.common.errors import (
    InvalidPaymentResponseError,
    PaymentClientError,
    PaymentConfigurationError,
    PaymentServerRejectedError,
    PaymentServerUnavailableError,
    S2SAuthenticationError,
)
from paperpay.common.logging import configure_logging, logger, trace_id_ctx
from paperpay.common.metrics import (
    gateway_callbacks_total,
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    s2s_verification_failures_total,
)
from paperpay.common.startup import log_startup_config
from paperpay.common.tracing import instrument_app, setup_tracing
from paperpay.services.api_gateway.s2s import RedisNonceStore, S2SVerifier
from paperpay.services.checkout.schemas import CardPaymentRequest, PaymentResponse
from paperpay.services.checkout.service import GATEWAY_STATUS_SUCCESS, CheckoutService
from paperpay.services.payment_client.client import PaymentServerClient

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "PAYMENT_SERVER__URL",
        "PAYMENT_SERVER__API_KEY",
        "PAYMENT_SERVER__HMAC_SECRET",
        "OUTBOUND_PAYMENT_URL",
        "OUTBOUND_PAYMENT_KEY",
        "OUTBOUND_PAYMENT_SECRET",
        "S2S_API_KEYS",
        "REDIS_URL",
    ],
)

payment_client = PaymentServerClient.from_settings(settings)
checkout_service = CheckoutService(
    payment_client,
    default_email=settings.default_user_email,
    merchant_id=settings.payhere_merchant_id,
    merchant_secret=settings.payhere_merchant_secret,
)
s2s_verifier = S2SVerifier(
    api_keys=split_secrets(settings.s2s_api_keys),
    hmac_secrets=split_secrets(settings.s2s_hmac_secrets),
    max_skew_seconds=settings.s2s_max_skew_seconds,
    nonce_store=RedisNonceStore.from_url(settings.redis_url) if settings.redis_url else None,
)

ERROR_STATUS: dict[type[PaymentClientError], int] = {
    PaymentConfigurationError: 500,
    PaymentServerRejectedError: 502,
    InvalidPaymentResponseError: 502,
    PaymentServerUnavailableError: 503,
}
GENERIC_PAYMENT_ERROR = "An error occurred while processing your payment. Please try again."


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Close the pooled payment-server connection with app lifecycle."""

    yield
    await payment_client.aclose()


app = FastAPI(title="PaperPay Gateway", lifespan=lifespan)
instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def get_checkout_service() -> CheckoutService:
    return checkout_service


def get_s2s_verifier() -> S2SVerifier:
    return s2s_verifier


async def require_s2s(request: Request, verifier: S2SVerifier = Depends(get_s2s_verifier)) -> str:
    """Reject requests without a valid server-to-server signature."""

    # Signers hash the path as sent, before percent-decoding.
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    path_and_query = raw_path.split(b"?", 1)[0].decode("latin-1")
    if request.url.query:
        path_and_query = f"{path_and_query}?{request.url.query}"
    body = await request.body()
    try:
        return verifier.verify(request.method, path_and_query, request.headers, body)
    except S2SAuthenticationError as exc:
        s2s_verification_failures_total.labels(service=settings.service_name, reason=exc.reason).inc()
        logger.warning("s2s verification failed path=%s reason=%s", request.url.path, exc.reason)
        raise HTTPException(status_code=401, detail=f"Unauthorized: {exc.reason}") from exc


def _failure(status_code: int, message: str) -> JSONResponse:
    body = PaymentResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@app.post("/api/payments/card", response_model=PaymentResponse)
async def initiate_card_payment(
    req: CardPaymentRequest,
    _api_key: str = Depends(require_s2s),
    x_user_id: str | None = Header(default=None),
    x_s2s_user_id: str | None = Header(default=None),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Create a payment intent and return the gateway redirect fields."""

    user_id = (x_user_id or "").strip() or (x_s2s_user_id or "").strip()
    if not user_id:
        logger.warning("card payment attempt without user id")
        return _failure(401, "User authentication failed")

    logger.info(
        "processing card payment user_id=%s amount=%s currency=%s paper_id=%s payment_id=%s",
        user_id,
        req.amount,
        req.currency,
        req.paper_id,
        req.payment_id,
    )
    try:
        return await checkout.initiate_card_payment(req, user_id)
    except PaymentClientError as exc:
        logger.error("card payment failed user_id=%s error_type=%s error=%s", user_id, exc.error_type, exc)
        return _failure(ERROR_STATUS.get(type(exc), 500), GENERIC_PAYMENT_ERROR)


@app.post("/api/payments/payhere-callback")
async def payhere_callback(request: Request, checkout: CheckoutService = Depends(get_checkout_service)):
    """Gateway notify webhook; unauthenticated, verified by `md5sig`."""

    form = await request.form()
    data = {key: str(value) for key, value in form.items()}
    verified = checkout.verify_gateway_callback(data)
    gateway_callbacks_total.labels(service=settings.service_name, verified=str(verified).lower()).inc()
    if not verified:
        raise HTTPException(status_code=400, detail="Invalid signature")

    order_id = data.get("order_id", "")
    status_code = data.get("status_code", "")
    if status_code == GATEWAY_STATUS_SUCCESS:
        logger.info("payment successful order_id=%s", order_id)
    else:
        logger.warning("payment not successful order_id=%s status=%s", order_id, status_code)
    return {"ok": True}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
