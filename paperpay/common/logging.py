"""JSON logging for the gateway and the payment client.

Every record carries the service name and the request trace id. Records
emitted inside `payment_context` also carry the order id and idempotency key
of the intent being created, so all attempts of one logical call group
together.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from pythonjsonlogger.json import JsonFormatter

from paperpay.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")
idempotency_key_ctx: ContextVar[str] = ContextVar("idempotency_key", default="")

CONTEXT_FIELDS: dict[str, ContextVar[str]] = {
    "trace_id": trace_id_ctx,
    "order_id": order_id_ctx,
    "idempotency_key": idempotency_key_ctx,
}
LOG_FORMAT = " ".join(
    ["%(asctime)s", "%(levelname)s", "%(service_name)s"]
    + [f"%({name})s" for name in CONTEXT_FIELDS]
    + ["%(message)s"]
)


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        for name, var in CONTEXT_FIELDS.items():
            setattr(record, name, var.get())
        return True


@contextmanager
def payment_context(order_id: str, idempotency_key: str) -> Iterator[None]:
    """Tag log records emitted while one payment intent is being created."""

    order_token = order_id_ctx.set(order_id)
    key_token = idempotency_key_ctx.set(idempotency_key)
    try:
        yield
    finally:
        idempotency_key_ctx.reset(key_token)
        order_id_ctx.reset(order_token)


def configure_logging(level: str | None = None) -> None:
    """Route all records to stdout as JSON, replacing existing root handlers."""

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level or settings.log_level)


logger = logging.getLogger("paperpay")
