import logging
import secrets
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from signal_relay.config import Settings, get_settings
from signal_relay.exceptions import AppError, Cancelled, ExecutionError, RateLimitError
from signal_relay.exchange.mexc_client import MEXCClient
from signal_relay.rate_limiter import SlidingWindowRateLimiter
from signal_relay.routers import system_router, webhook_router
from signal_relay.schemas import ErrorResponse
from signal_relay.signature import SignatureVerifier
from signal_relay.strategy_overrides import load_strategy_overrides
from signal_relay.trade_executor import TradeExecutor

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    request_id = _request_id(request)
    headers = {REQUEST_ID_HEADER: request_id}

    if isinstance(exc, (ExecutionError, Cancelled)):
        logger.error(f"[{request_id}] Error processing webhook: {exc.message}")
        details = exc.details() if isinstance(exc, ExecutionError) else {"attempts": exc.attempt_count}
        body = ErrorResponse(
            message="Failed to process webhook",
            error=exc.message,
            details=details,
            request_id=request_id,
        )
    else:
        if isinstance(exc, RateLimitError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        logger.warning(f"[{request_id}] Webhook rejected ({exc.status_code}): {exc.message}")
        body = ErrorResponse(message=exc.message, error=exc.message, request_id=request_id)

    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = "Not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id(request)
    logger.exception(f"[{request_id}] Unhandled error: {exc}")
    body = ErrorResponse(message="Internal server error", request_id=request_id)
    return JSONResponse(
        status_code=500,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers={REQUEST_ID_HEADER: request_id},
    )


def create_app(
    settings: Optional[Settings] = None,
    executor: Optional[TradeExecutor] = None,
) -> FastAPI:
    """
    Build the webhook app.

    Settings, strategy overrides and the exchange client are resolved once
    here and shared read-only by every request.

    Args:
        settings: Defaults to Settings() from the environment / .env
        executor: Pre-built executor (tests); otherwise a MEXC-backed one
    """
    settings = settings or get_settings()
    client = None
    if executor is None:
        client = MEXCClient(settings)
        executor = TradeExecutor(settings, client, load_strategy_overrides(settings))

    app = FastAPI(title="Signal Relay", version=settings.version)
    app.state.settings = settings
    app.state.verifier = SignatureVerifier(settings.webhook_secret)
    app.state.executor = executor
    app.state.rate_limiter = SlidingWindowRateLimiter(
        settings.rate_limit_max, settings.rate_limit_window_seconds
    )
    app.state.started_at = time.monotonic()

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request.state.request_id = secrets.token_hex(16)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    app.include_router(webhook_router.router)
    app.include_router(system_router.router)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            f"Signal relay started (version={settings.version}, "
            f"max_retries={settings.max_retries}, retry_delay={settings.retry_delay}ms)"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down - closing exchange client")
        if client is not None:
            await client.close()
        logger.info("Server closed")

    return app
