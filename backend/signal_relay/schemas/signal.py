"""Inbound trade signal schema"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from signal_relay.exceptions import ValidationError

REQUIRED_FIELDS = ("symbol", "side", "quantity")
VALID_SIDES = ("buy", "sell")


def _decimal_string(value: Any, field_name: str) -> str:
    # TradingView placeholders like {{close}} render as bare numbers
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a decimal number")
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a decimal number")
    value = value.strip()
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"{field_name} must be a decimal number")
    if not parsed.is_finite():
        raise ValueError(f"{field_name} must be a decimal number")
    return value


class TradeSignal(BaseModel):
    """Authenticated buy/sell instruction; unknown payload fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    symbol: str
    side: str
    quantity: str
    price: Optional[str] = None
    type: str = "LIMIT"
    strategy: Optional[str] = None
    message: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def symbol_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("symbol is required")
        return v

    @field_validator("side")
    @classmethod
    def side_is_buy_or_sell(cls, v: str) -> str:
        if v.lower() not in VALID_SIDES:
            raise ValueError("side must be 'buy' or 'sell'")
        return v.lower()

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_positive_decimal(cls, v: Any) -> str:
        v = _decimal_string(v, "quantity")
        if Decimal(v) <= 0:
            raise ValueError("quantity must be positive")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def price_decimal(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return _decimal_string(v, "price")

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "LIMIT"
        return str(v).strip().upper()

    @classmethod
    def from_payload(cls, payload: Any) -> "TradeSignal":
        """Parse a decoded webhook body, raising the domain ValidationError."""
        if not isinstance(payload, dict):
            raise ValidationError("Payload must be a JSON object")

        missing = [name for name in REQUIRED_FIELDS if payload.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        try:
            return cls.model_validate(payload)
        except pydantic.ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValidationError(f"Invalid signal: {problems}") from e


def require_trade_fields(signal: TradeSignal) -> None:
    """Raise ValidationError when symbol, side or quantity is empty."""
    for name in REQUIRED_FIELDS:
        if not getattr(signal, name, None):
            raise ValidationError(f"Missing required field: {name}")
