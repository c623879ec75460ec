"""
OrderRequest construction for one dispatch attempt.

An order is rebuilt on every attempt because the exchange rejects
timestamps outside recvWindow, and the signature covers the timestamp.
"""

import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from signal_relay.exchange.signing import canonical_query, sign_params
from signal_relay.schemas import TradeSignal
from signal_relay.strategy_overrides import StrategyOverride


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OrderRequest:
    """Signed parameter set; `params` excludes the signature itself."""

    params: Mapping[str, Any]
    signature: str
    strategy: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def timestamp(self) -> int:
        return int(self.params["timestamp"])

    @property
    def query_string(self) -> str:
        return f"{canonical_query(self.params)}&signature={self.signature}"

    def as_dict(self) -> Dict[str, Any]:
        signed = dict(self.params)
        signed["signature"] = self.signature
        return signed


def build_order_params(
    signal: TradeSignal,
    recv_window: int,
    timestamp: int,
    override: Optional[StrategyOverride] = None,
) -> Dict[str, Any]:
    """Unsigned exchange parameters for a signal, overrides merged last."""
    order_type = (signal.type or "LIMIT").upper()
    params: Dict[str, Any] = {
        "symbol": signal.symbol,
        "side": signal.side.upper(),
        "type": order_type,
        "quantity": signal.quantity,
        "timestamp": timestamp,
        "recvWindow": recv_window,
    }
    if order_type == "LIMIT" and signal.price:
        params["price"] = signal.price

    if override is not None:
        params.update(override.params)
    return params


def build_order_request(
    signal: TradeSignal,
    api_secret: str,
    recv_window: int,
    override: Optional[StrategyOverride] = None,
    clock: Callable[[], int] = epoch_ms,
) -> OrderRequest:
    """Build and sign the order for one attempt, stamped with the current time."""
    params = build_order_params(signal, recv_window, clock(), override)
    return OrderRequest(
        params=params,
        signature=sign_params(params, api_secret),
        strategy=signal.strategy,
    )
