"""
Webhook routes

POST /webhook/tradingview - TradingView alert -> MEXC order

Order of checks is fixed: rate limit -> body size -> signature -> payload
validation -> execution. Signature verification runs once, before any retry loop.
"""

import json
import logging
import time

from fastapi import APIRouter, Depends, Request

from signal_relay.config import Settings
from signal_relay.dependencies import (
    client_ip,
    enforce_rate_limit,
    get_executor,
    get_request_id,
    get_settings,
    get_verifier,
)
from signal_relay.exceptions import PayloadTooLarge, ValidationError
from signal_relay.schemas import Latency, TradeSignal, WebhookResponse, format_ms
from signal_relay.signature import SIGNATURE_HEADER, SignatureVerifier
from signal_relay.trade_executor import TradeExecutor

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhook",
    tags=["webhook"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, stopping with 413 once it exceeds limit bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(f"Request body exceeds {limit} bytes")

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge(f"Request body exceeds {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/tradingview")
async def tradingview_webhook(
    request: Request,
    verifier: SignatureVerifier = Depends(get_verifier),
    executor: TradeExecutor = Depends(get_executor),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """Verify, validate and execute a TradingView alert."""
    started = time.perf_counter()

    raw_body = await read_limited_body(request, settings.max_body_bytes)
    verifier.require(raw_body, request.headers.get(SIGNATURE_HEADER), request_id)

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Malformed JSON body")

    logger.info(
        f"[{request_id}] Received webhook from {client_ip(request)} "
        f"(user-agent={request.headers.get('user-agent')}): {payload}"
    )

    signal = TradeSignal.from_payload(payload)
    result = await executor.execute(signal, request_id)

    processing_ms = (time.perf_counter() - started) * 1000
    logger.info(f"[{request_id}] Webhook processed successfully in {format_ms(processing_ms)}")

    return WebhookResponse(
        data=result.data,
        latency=Latency(total=format_ms(processing_ms), exchange_api=format_ms(result.latency_ms)),
        attempts=result.attempt_count,
        request_id=request_id,
    ).model_dump(by_alias=True)
