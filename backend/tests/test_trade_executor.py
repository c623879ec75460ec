"""
Tests for backend/signal_relay/trade_executor.py

Covers:
- Happy path result (data, attempt count, latency)
- Retry on timeouts and stale-signature codes, with fresh timestamp/signature
- Retry exhaustion and non-retryable errors -> TerminalExecutionError
- Custom retry predicates
- Validation before any exchange call
- Deadline cancellation
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from signal_relay.exceptions import (
    Cancelled,
    TerminalExecutionError,
    ValidationError,
)
from signal_relay.exchange.errors import (
    ExchangeAPIError,
    ExchangeTimeoutError,
    ExchangeTransportError,
)
from signal_relay.exchange.signing import sign_params
from signal_relay.schemas import TradeSignal
from signal_relay.strategy_overrides import StrategyOverrides
from signal_relay.trade_executor import ExecutionResult, TradeExecutor, retry_on_codes

from tests.helpers import make_settings

STALE = ExchangeAPIError(
    "MEXC API error (400)", 400, {"code": 700002, "msg": "Signature for this request is not valid."}
)
REJECTED = ExchangeAPIError(
    "MEXC API error (400)", 400, {"code": 30004, "msg": "Insufficient position"}
)


def _signal(**fields) -> TradeSignal:
    payload = {"symbol": "BTCUSDT", "side": "buy", "quantity": "0.001", "price": "50000", "type": "LIMIT"}
    payload.update(fields)
    return TradeSignal.from_payload(payload)


def _ticking_clock(start=1700000000000, step=1000):
    state = {"now": start - step}

    def clock():
        state["now"] += step
        return state["now"]

    return clock


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def executor_factory(mock_exchange_client, sleep):
    def _make(**settings_overrides):
        overrides = settings_overrides.pop("overrides", None)
        return TradeExecutor(
            make_settings(**settings_overrides),
            mock_exchange_client,
            overrides=overrides,
            clock=_ticking_clock(),
            sleep=sleep,
        )

    return _make


class TestExecuteSuccess:
    """Tests for a first-attempt success."""

    @pytest.mark.asyncio
    async def test_returns_result(self, executor_factory, mock_exchange_client):
        result = await executor_factory().execute(_signal(), "req-1")

        assert isinstance(result, ExecutionResult)
        assert result.success is True
        assert result.data["orderId"] == "C02__443776347957968896"
        assert result.attempt_count == 1
        assert result.latency_ms >= 0
        assert result.total_latency_ms >= result.latency_ms
        mock_exchange_client.place_order.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dispatches_signed_order(self, executor_factory, mock_exchange_client):
        await executor_factory().execute(_signal(), "req-1")

        order, request_id = mock_exchange_client.place_order.call_args.args
        assert request_id == "req-1"
        assert order.params["side"] == "BUY"
        assert order.params["price"] == "50000"
        assert order.params["recvWindow"] == 5000
        assert order.signature == sign_params(order.params, "apisecret")

    @pytest.mark.asyncio
    async def test_applies_strategy_override(self, executor_factory, mock_exchange_client):
        overrides = StrategyOverrides({"MA_CROSSOVER": {"type": "MARKET", "quoteOrderQty": "10"}})
        await executor_factory(overrides=overrides).execute(_signal(strategy="ma_crossover"))

        order = mock_exchange_client.place_order.call_args.args[0]
        assert order.params["type"] == "MARKET"
        assert order.params["quoteOrderQty"] == "10"
        # price is decided before the merge
        assert order.params["price"] == "50000"

    @pytest.mark.asyncio
    async def test_unknown_strategy_uses_defaults(self, executor_factory, mock_exchange_client):
        overrides = StrategyOverrides({"OTHER": {"type": "MARKET"}})
        await executor_factory(overrides=overrides).execute(_signal(strategy="MA_CROSSOVER"))

        order = mock_exchange_client.place_order.call_args.args[0]
        assert order.params["type"] == "LIMIT"

    @pytest.mark.asyncio
    async def test_result_is_immutable(self, executor_factory):
        result = await executor_factory().execute(_signal())
        with pytest.raises(AttributeError):
            result.success = False


class TestExecuteRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_two_timeouts_then_success(self, executor_factory, mock_exchange_client, sleep):
        """Timeout, timeout, success with max_retries=3 -> exactly 3 calls."""
        mock_exchange_client.place_order.side_effect = [
            ExchangeTimeoutError("MEXC API request timeout"),
            ExchangeTimeoutError("MEXC API request timeout"),
            {"orderId": "ok"},
        ]
        result = await executor_factory(max_retries=3).execute(_signal())

        assert result.success is True
        assert result.data == {"orderId": "ok"}
        assert result.attempt_count == 3
        assert mock_exchange_client.place_order.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_always_timeout_exhausts_retries(self, executor_factory, mock_exchange_client, sleep):
        """Always timing out with max_retries=3 -> 4 calls, then terminal error."""
        mock_exchange_client.place_order.side_effect = ExchangeTimeoutError("MEXC API request timeout")

        with pytest.raises(TerminalExecutionError) as exc_info:
            await executor_factory(max_retries=3).execute(_signal())

        assert mock_exchange_client.place_order.await_count == 4
        assert sleep.await_count == 3
        assert exc_info.value.attempt_count == 4
        assert exc_info.value.status_code == 500
        assert "retries exhausted" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_retry_delay_from_settings(self, executor_factory, mock_exchange_client, sleep):
        mock_exchange_client.place_order.side_effect = [ExchangeTimeoutError("t"), {"orderId": "ok"}]
        await executor_factory(retry_delay=500).execute(_signal())
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_stale_signature_code_retried(self, executor_factory, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = [STALE, {"orderId": "ok"}]
        result = await executor_factory().execute(_signal())
        assert result.attempt_count == 2

    @pytest.mark.asyncio
    async def test_each_attempt_resigned_with_fresh_timestamp(self, executor_factory, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = [STALE, ExchangeTimeoutError("t"), {"orderId": "ok"}]
        await executor_factory().execute(_signal())

        orders = [call.args[0] for call in mock_exchange_client.place_order.call_args_list]
        timestamps = [o.timestamp for o in orders]
        assert timestamps == sorted(set(timestamps))
        assert len({o.signature for o in orders}) == 3
        for order in orders:
            assert order.signature == sign_params(order.params, "apisecret")

    @pytest.mark.asyncio
    async def test_stale_code_exhaustion_carries_exchange_payload(self, executor_factory, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = STALE

        with pytest.raises(TerminalExecutionError) as exc_info:
            await executor_factory(max_retries=1).execute(_signal())

        assert mock_exchange_client.place_order.await_count == 2
        assert exc_info.value.exchange_status == 400
        assert exc_info.value.exchange_payload["code"] == 700002

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self, executor_factory, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = ExchangeTimeoutError("t")
        with pytest.raises(TerminalExecutionError):
            await executor_factory(max_retries=0).execute(_signal())
        assert mock_exchange_client.place_order.await_count == 1


class TestExecuteTerminal:
    """Tests for non-retryable failures."""

    @pytest.mark.asyncio
    async def test_other_exchange_error_not_retried(self, executor_factory, mock_exchange_client, sleep):
        mock_exchange_client.place_order.side_effect = REJECTED

        with pytest.raises(TerminalExecutionError) as exc_info:
            await executor_factory().execute(_signal())

        assert mock_exchange_client.place_order.await_count == 1
        sleep.assert_not_awaited()
        err = exc_info.value
        assert err.exchange_status == 400
        assert err.exchange_payload == {"code": 30004, "msg": "Insufficient position"}
        assert err.details() == {
            "exchangeStatus": 400,
            "exchangeError": {"code": 30004, "msg": "Insufficient position"},
            "attempts": 1,
        }

    @pytest.mark.asyncio
    async def test_transport_error_not_retried(self, executor_factory, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = ExchangeTransportError("refused")
        with pytest.raises(TerminalExecutionError):
            await executor_factory().execute(_signal())
        assert mock_exchange_client.place_order.await_count == 1

    @pytest.mark.asyncio
    async def test_configured_codes_replace_default(self, executor_factory, mock_exchange_client):
        """Retryable codes come from settings; 700002 is only the default."""
        mock_exchange_client.place_order.side_effect = [REJECTED, STALE]

        with pytest.raises(TerminalExecutionError) as exc_info:
            await executor_factory(retryable_error_codes=[30004]).execute(_signal())

        assert mock_exchange_client.place_order.await_count == 2
        assert exc_info.value.exchange_payload["code"] == 700002

    @pytest.mark.asyncio
    async def test_custom_retry_predicate(self, mock_exchange_client, sleep):
        mock_exchange_client.place_order.side_effect = [
            ExchangeAPIError("busy", 503, {"msg": "busy"}),
            {"orderId": "ok"},
        ]
        executor = TradeExecutor(
            make_settings(),
            mock_exchange_client,
            retry_predicate=lambda err: err.status_code == 503,
            sleep=sleep,
        )
        result = await executor.execute(_signal())
        assert result.attempt_count == 2


class TestExecuteValidation:
    """Missing fields never reach the exchange."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["symbol", "side", "quantity"])
    async def test_missing_field_raises_without_call(self, executor_factory, mock_exchange_client, missing):
        fields = {"symbol": "BTCUSDT", "side": "buy", "quantity": "0.001", "type": "LIMIT"}
        fields[missing] = ""
        signal = TradeSignal.model_construct(**fields)

        with pytest.raises(ValidationError):
            await executor_factory().execute(signal)

        mock_exchange_client.place_order.assert_not_awaited()


class TestExecuteCancellation:
    """Tests for the overall request deadline."""

    @pytest.mark.asyncio
    async def test_deadline_aborts_in_flight_call(self, mock_exchange_client):
        cancelled = asyncio.Event()

        async def hang(order, request_id):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        mock_exchange_client.place_order.side_effect = hang
        executor = TradeExecutor(make_settings(request_timeout_ms=50), mock_exchange_client)

        with pytest.raises(Cancelled) as exc_info:
            await executor.execute(_signal(), "req-1")

        assert cancelled.is_set()
        assert exc_info.value.status_code == 504
        assert exc_info.value.attempt_count == 1

    @pytest.mark.asyncio
    async def test_deadline_aborts_retry_delay(self, mock_exchange_client):
        mock_exchange_client.place_order.side_effect = ExchangeTimeoutError("t")
        executor = TradeExecutor(
            make_settings(request_timeout_ms=50, retry_delay=10000),
            mock_exchange_client,
        )

        with pytest.raises(Cancelled):
            await executor.execute(_signal())

        assert mock_exchange_client.place_order.await_count == 1

    @pytest.mark.asyncio
    async def test_outer_cancellation_propagates(self, mock_exchange_client):
        async def hang(order, request_id):
            await asyncio.sleep(10)

        mock_exchange_client.place_order.side_effect = hang
        executor = TradeExecutor(make_settings(), mock_exchange_client)

        task = asyncio.ensure_future(executor.execute(_signal()))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestRetryOnCodes:
    """Tests for retry_on_codes()"""

    def test_matches_configured_codes(self):
        predicate = retry_on_codes([700002, "700003"])
        assert predicate(STALE) is True
        assert predicate(ExchangeAPIError("x", 400, {"code": 700003})) is True
        assert predicate(REJECTED) is False
        assert predicate(ExchangeAPIError("x", 500, "not json")) is False
