"""MEXC exchange access: order building, request signing and dispatch."""

from signal_relay.exchange.errors import (
    ExchangeAPIError,
    ExchangeError,
    ExchangeTimeoutError,
    ExchangeTransportError,
)
from signal_relay.exchange.mexc_client import MEXCClient
from signal_relay.exchange.order_builder import OrderRequest, build_order_request
from signal_relay.exchange.signing import canonical_query, sign_params

__all__ = [
    "ExchangeAPIError",
    "ExchangeError",
    "ExchangeTimeoutError",
    "ExchangeTransportError",
    "MEXCClient",
    "OrderRequest",
    "build_order_request",
    "canonical_query",
    "sign_params",
]
