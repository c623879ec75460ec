from typing import Any, Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Inbound webhook (TradingView) shared secret for x-tv-signature
    webhook_secret: str = ""

    # MEXC API - HMAC key pair
    mexc_api_key: str = ""
    mexc_api_secret: str = ""

    # Exchange endpoint
    exchange_base_url: str = "https://api.mexc.com"
    exchange_order_path: str = "/api/v3/order"
    exchange_api_key_header: str = "X-MEXC-APIKEY"

    # Dispatch and retry (all durations in milliseconds)
    mexc_api_timeout: int = 5000  # per attempt
    max_retries: int = 3  # retries after the first attempt
    retry_delay: int = 500
    recv_window: int = 5000
    request_timeout_ms: int = 15000  # whole execution incl. retries, 0 disables
    # 700002: "Signature for this request is not valid" (stale timestamp)
    retryable_error_codes: List[int] = [700002]

    # Strategy name -> extra order params, e.g. {"MA_CROSSOVER": {"type": "MARKET"}}
    # Legacy STRATEGY_<NAME>_PARAMS variables are picked up by strategy_overrides
    strategy_params: Dict[str, Dict[str, Any]] = {}

    # Webhook admission (per client IP)
    rate_limit_window_seconds: int = 60
    rate_limit_max: int = 30
    trust_proxy: bool = True
    max_body_bytes: int = 1024 * 1024  # larger webhook bodies get 413

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # enables combined.log / error.log when set

    # Server
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3000

    @field_validator("max_retries", "retry_delay", "request_timeout_ms")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator(
        "mexc_api_timeout", "recv_window", "rate_limit_window_seconds", "rate_limit_max",
        "max_body_bytes",
    )
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("exchange_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        frozen = True


def get_settings() -> Settings:
    """Build settings from the environment / .env once, at startup."""
    return Settings()
