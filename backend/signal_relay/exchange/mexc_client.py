"""
MEXC Spot Order Client

Sends signed orders to the MEXC REST API.

- One httpx.AsyncClient per process; its connection pool is shared by all
  concurrently handled webhooks
- Fixed per-attempt timeout
- Errors translated to ExchangeTimeoutError / ExchangeAPIError /
  ExchangeTransportError; retry decisions belong to the TradeExecutor
"""

import logging
from typing import Any, Optional

import httpx

from signal_relay.config import Settings
from signal_relay.exchange.errors import (
    ExchangeAPIError,
    ExchangeTimeoutError,
    ExchangeTransportError,
)
from signal_relay.exchange.order_builder import OrderRequest

logger = logging.getLogger(__name__)


def _response_payload(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        # Sanitize: don't echo unbounded bodies
        return {"msg": resp.text[:200]}


class MEXCClient:
    """Places spot orders; safe to share between concurrent requests."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = settings.exchange_base_url
        self._order_path = settings.exchange_order_path
        self._api_key = settings.mexc_api_key
        self._api_key_header = settings.exchange_api_key_header
        self._timeout = settings.mexc_api_timeout / 1000.0
        self._client = client or httpx.AsyncClient(timeout=self._timeout)
        logger.info(
            f"MEXCClient initialized (base={self._base_url}, timeout={settings.mexc_api_timeout}ms)"
        )

    async def close(self):
        """Close the underlying httpx client to release connections."""
        if self._client:
            await self._client.aclose()

    async def place_order(self, order: OrderRequest, request_id: str = "-") -> Any:
        """POST one signed order and return the exchange's JSON response.

        Raises:
            ExchangeTimeoutError: No response within the per-attempt timeout.
            ExchangeAPIError: Exchange answered 4xx/5xx (payload attached).
            ExchangeTransportError: Exchange unreachable.
        """
        url = f"{self._base_url}{self._order_path}?{order.query_string}"
        headers = {
            self._api_key_header: self._api_key,
            "Content-Type": "application/json",
        }
        try:
            resp = await self._client.post(url, headers=headers, timeout=self._timeout)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"[{request_id}] MEXC API request timeout: {e!r}")
            raise ExchangeTimeoutError("MEXC API request timeout") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            payload = _response_payload(e.response)
            logger.error(f"[{request_id}] MEXC API response error {status}: {payload}")
            raise ExchangeAPIError(
                f"MEXC API error ({status})", status_code=status, payload=payload
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[{request_id}] MEXC API request failed: {e!r}")
            raise ExchangeTransportError(f"MEXC API unavailable: {e}") from e

        return _response_payload(resp)
