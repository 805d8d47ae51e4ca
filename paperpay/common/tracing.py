"""OpenTelemetry wiring for the gateway and outbound payment-server calls."""

from contextlib import contextmanager
from typing import Iterator

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from paperpay.common.config import settings


tracer = trace.get_tracer("paperpay")


def setup_tracing(service_name: str, endpoint: str | None = None) -> bool:
    """Export spans over OTLP HTTP. Returns False when no collector is configured."""

    endpoint = endpoint or settings.otel_exporter_otlp_endpoint
    if not endpoint:
        return False
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    return True


@contextmanager
def payment_server_span(operation: str, **attributes: str | int) -> Iterator[trace.Span]:
    """Client span around one payment-server operation; exceptions are recorded on it."""

    with tracer.start_as_current_span(
        f"payment_server.{operation}",
        kind=trace.SpanKind.CLIENT,
        attributes={f"payment.{name}": value for name, value in attributes.items()},
    ) as span:
        yield span


def instrument_app(app: FastAPI) -> None:
    FastAPIInstrumentor.instrument_app(app)
