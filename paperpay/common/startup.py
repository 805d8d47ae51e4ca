"""Startup-time helpers for safe config logging."""

import os
from urllib.parse import urlsplit, urlunsplit

from paperpay.common.logging import logger


SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN", "HMAC")


def _strip_userinfo(value: str) -> str:
    """Drop `user:password@` from URL-shaped values such as REDIS_URL."""

    parts = urlsplit(value)
    if not parts.scheme or "@" not in parts.netloc:
        return value
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"<redacted>@{host}", parts.path, parts.query, parts.fragment))


def safe_env(name: str) -> str:
    """Env value for logging; credential-like names are masked entirely."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name.upper() for marker in SECRET_MARKERS):
        return "<redacted>" if value else "<empty>"
    return _strip_userinfo(value)


def log_startup_config(service_name: str, keys: list[str]) -> dict[str, str]:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": service_name, **{key: safe_env(key) for key in keys}}
    logger.info("startup_config=%s", config)
    return config
