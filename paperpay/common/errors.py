"""Error taxonomy for the payment-server exchange.

Every failure of a payment-intent call surfaces as a `PaymentClientError`
subclass so the checkout flow can decide what the payer sees.
"""


class PaymentClientError(Exception):
    """Base class for payment-server call failures."""

    error_type = "PAYMENT_CLIENT_ERROR"


class PaymentConfigurationError(PaymentClientError):
    """Signing credentials are missing. Raised before any network call."""

    error_type = "CONFIGURATION"


class PaymentServerRejectedError(PaymentClientError):
    """Payment server answered 4xx. Never retried."""

    error_type = "REJECTED"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"payment server rejected request: status={status_code}")
        self.status_code = status_code
        self.body = body


class PaymentServerUnavailableError(PaymentClientError):
    """All attempts ended in timeouts, network errors or 5xx responses."""

    error_type = "RETRY_EXHAUSTED"

    def __init__(
        self,
        attempts: int,
        last_status: int | None = None,
        last_body: str = "",
        last_error: str | None = None,
    ) -> None:
        detail = f"status={last_status}" if last_status is not None else f"error={last_error}"
        super().__init__(f"payment server unavailable after {attempts} attempts ({detail})")
        self.attempts = attempts
        self.last_status = last_status
        self.last_body = last_body
        self.last_error = last_error


class InvalidPaymentResponseError(PaymentClientError):
    """2xx response that does not honour the intent response contract."""

    error_type = "INVALID_RESPONSE"

    def __init__(self, reason: str, body: str = "") -> None:
        super().__init__(f"invalid payment server response: {reason}")
        self.reason = reason
        self.body = body


class S2SAuthenticationError(Exception):
    """Inbound server-to-server request failed signature verification."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
