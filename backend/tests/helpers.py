"""Signing and settings helpers shared by tests."""

import hashlib
import hmac
import json

from signal_relay.config import Settings

WEBHOOK_SECRET = "s3cr3t"
API_KEY = "apikey"
API_SECRET = "apisecret"


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env, with no retry delay and no deadline."""
    values = {
        "webhook_secret": WEBHOOK_SECRET,
        "mexc_api_key": API_KEY,
        "mexc_api_secret": API_SECRET,
        "exchange_base_url": "https://api.mexc.test",
        "retry_delay": 0,
        "request_timeout_ms": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sign_body(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def encode(payload) -> bytes:
    """Compact JSON, as TradingView / JSON.stringify sends it."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
