"""Central environment-driven settings shared by the gateway and payment client.

Each process loads this once at startup. Payment-server credentials can come
from the structured `PAYMENT_SERVER__*` keys or from the flat
`OUTBOUND_PAYMENT_*` keys (see `.env.example`).
"""

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaymentServerSettings(BaseModel):
    """Connection and signing settings for the outbound payment server."""

    url: str | None = None
    api_key: str | None = None
    hmac_secret: str | None = None
    timeout_seconds: float = 30.0
    max_attempts: int = 3
    backoff_step_seconds: float = 0.25


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "paperpay-gateway"
    log_level: str = "INFO"
    redis_url: str = ""
    otel_exporter_otlp_endpoint: str = ""

    payment_server: PaymentServerSettings = PaymentServerSettings()
    outbound_payment_url: str | None = None
    outbound_payment_key: str | None = None
    outbound_payment_secret: str | None = None

    s2s_api_keys: str = ""
    s2s_hmac_secrets: str = ""
    s2s_max_skew_seconds: int = 300

    payhere_merchant_id: str = ""
    payhere_merchant_secret: str = ""
    default_user_email: str = "customer@example.com"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_nested_delimiter="__")

    def resolved_payment_server(self) -> PaymentServerSettings:
        """Structured payment-server settings with flat keys filling the gaps."""

        current = self.payment_server
        return current.model_copy(
            update={
                "url": current.url or self.outbound_payment_url or "http://localhost:5025",
                "api_key": current.api_key or self.outbound_payment_key,
                "hmac_secret": current.hmac_secret or self.outbound_payment_secret,
            }
        )


def split_secrets(raw: str) -> list[str]:
    """Parse a comma-separated secret list: trimmed, non-blank, de-duplicated."""

    values: list[str] = []
    for item in raw.split(","):
        item = item.strip()
        if item and item not in values:
            values.append(item)
    return values


settings = CommonSettings()
