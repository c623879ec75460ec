"""Errors raised by the exchange client, before retry classification."""

from typing import Any, Optional


class ExchangeError(Exception):
    """Base for failures talking to the exchange."""

    status_code: Optional[int] = None
    payload: Any = None


class ExchangeTimeoutError(ExchangeError):
    """The order call did not complete within the per-attempt timeout."""


class ExchangeTransportError(ExchangeError):
    """Connection refused/reset or other transport failure."""


class ExchangeAPIError(ExchangeError):
    """The exchange answered with an error status."""

    def __init__(self, message: str, status_code: int, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)

    @property
    def code(self) -> Optional[int]:
        """Exchange error code from the payload ({"code": 700002, "msg": ...})."""
        if not isinstance(self.payload, dict):
            return None
        try:
            return int(self.payload.get("code"))
        except (TypeError, ValueError):
            return None
