"""Centralized Pydantic schemas for webhook requests/responses"""

from .signal import TradeSignal, require_trade_fields
from .webhook import ErrorResponse, Latency, WebhookResponse, format_ms

__all__ = [
    # Request schemas
    "TradeSignal",
    "require_trade_fields",
    # Response schemas
    "WebhookResponse",
    "ErrorResponse",
    "Latency",
    "format_ms",
]
