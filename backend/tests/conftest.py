"""
Shared test fixtures for signal relay tests.

Provides reusable fixtures for:
- Settings isolated from the environment / .env
- Mock exchange clients
- Sample TradingView payloads
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from tests.helpers import make_settings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    """Settings with test credentials, no retry delay and no deadline."""
    return make_settings()


# ---------------------------------------------------------------------------
# Mock exchange client
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_exchange_client():
    """Create a mock exchange client for testing without hitting real APIs."""
    client = MagicMock()
    client.place_order = AsyncMock(return_value={
        "symbol": "BTCUSDT",
        "orderId": "C02__443776347957968896",
        "price": "50000",
        "origQty": "0.001",
        "type": "LIMIT",
        "side": "BUY",
    })
    client.close = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_payload():
    return {
        "symbol": "BTCUSDT",
        "side": "buy",
        "quantity": "0.001",
        "price": "50000",
        "type": "LIMIT",
        "strategy": "MA_CROSSOVER",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "message": "Buy signal: Moving average crossover detected",
    }
