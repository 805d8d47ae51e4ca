"""Settings resolution: structured keys first, flat keys as fallback."""

import pytest

from paperpay.common.config import CommonSettings, split_secrets


PAYMENT_ENV = [
    "PAYMENT_SERVER",
    "PAYMENT_SERVER__URL",
    "PAYMENT_SERVER__API_KEY",
    "PAYMENT_SERVER__HMAC_SECRET",
    "PAYMENT_SERVER__MAX_ATTEMPTS",
    "OUTBOUND_PAYMENT_URL",
    "OUTBOUND_PAYMENT_KEY",
    "OUTBOUND_PAYMENT_SECRET",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in PAYMENT_ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_any_payment_config():
    server = CommonSettings(_env_file=None).resolved_payment_server()

    assert server.url == "http://localhost:5025"
    assert server.api_key is None
    assert server.hmac_secret is None
    assert server.timeout_seconds == 30.0
    assert server.max_attempts == 3
    assert server.backoff_step_seconds == 0.25


def test_structured_keys_are_read_from_nested_env(monkeypatch):
    monkeypatch.setenv("PAYMENT_SERVER__URL", "http://pay.internal:5025")
    monkeypatch.setenv("PAYMENT_SERVER__API_KEY", "nested-key")
    monkeypatch.setenv("PAYMENT_SERVER__HMAC_SECRET", "nested-secret")
    monkeypatch.setenv("PAYMENT_SERVER__MAX_ATTEMPTS", "4")

    server = CommonSettings(_env_file=None).resolved_payment_server()

    assert server.url == "http://pay.internal:5025"
    assert server.api_key == "nested-key"
    assert server.hmac_secret == "nested-secret"
    assert server.max_attempts == 4


def test_flat_keys_fill_missing_structured_values(monkeypatch):
    monkeypatch.setenv("PAYMENT_SERVER__API_KEY", "nested-key")
    monkeypatch.setenv("OUTBOUND_PAYMENT_KEY", "flat-key")
    monkeypatch.setenv("OUTBOUND_PAYMENT_SECRET", "flat-secret")

    server = CommonSettings(_env_file=None).resolved_payment_server()

    assert server.api_key == "nested-key"
    assert server.hmac_secret == "flat-secret"


def test_split_secrets_trims_and_deduplicates():
    assert split_secrets(" a, b ,,a, ") == ["a", "b"]
    assert split_secrets("") == []
