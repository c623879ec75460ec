"""FastAPI dependencies resolving the components built in main.create_app()."""

from fastapi import Request

from signal_relay.config import Settings
from signal_relay.rate_limiter import SlidingWindowRateLimiter
from signal_relay.signature import SignatureVerifier
from signal_relay.trade_executor import TradeExecutor


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_verifier(request: Request) -> SignatureVerifier:
    return request.app.state.verifier


def get_executor(request: Request) -> TradeExecutor:
    return request.app.state.executor


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For behind a trusted proxy."""
    if request.app.state.settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request) -> None:
    # Runs on the event loop; the limiter window is not thread-safe
    limiter: SlidingWindowRateLimiter = request.app.state.rate_limiter
    limiter.check(client_ip(request))
