"""Prometheus metric definitions for the gateway and payment client."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


payment_intent_requests_total = Counter(
    "payment_intent_requests_total",
    "Logical payment-intent creations started",
    ["service"],
)
payment_intent_attempts_total = Counter(
    "payment_intent_attempts_total",
    "Payment-server attempts by outcome classification",
    ["service", "outcome"],
)
payment_intent_failures_total = Counter(
    "payment_intent_failures_total",
    "Payment-intent creations that ended in an error",
    ["service", "error_type"],
)
payment_intent_latency_seconds = Histogram(
    "payment_intent_latency_seconds",
    "Payment-intent creation latency seconds, retries included",
    ["service"],
)
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])
s2s_verification_failures_total = Counter(
    "s2s_verification_failures_total",
    "Rejected server-to-server requests",
    ["service", "reason"],
)
gateway_callbacks_total = Counter(
    "gateway_callbacks_total",
    "Payment gateway notifications received",
    ["service", "verified"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
