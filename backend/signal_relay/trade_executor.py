"""
Trade Executor

Turns a verified TradeSignal into a signed MEXC order and dispatches it,
retrying transient failures.

Per attempt: Building -> Signed -> Dispatched, then one of
  Success                      -> ExecutionResult
  RetryableFailure -> Building (new timestamp + signature after retry_delay)
  TerminalFailure              -> TerminalExecutionError

Retryable: per-attempt timeout, or an exchange error matching the retry
predicate (default: code in settings.retryable_error_codes, 700002 =
stale signature/timestamp). At most one exchange call is in flight per
request; retries are sequential.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from signal_relay.config import Settings
from signal_relay.exceptions import (
    Cancelled,
    ExecutionError,
    RetryableExecutionError,
    TerminalExecutionError,
)
from signal_relay.exchange.errors import (
    ExchangeAPIError,
    ExchangeError,
    ExchangeTimeoutError,
)
from signal_relay.exchange.order_builder import build_order_request, epoch_ms
from signal_relay.schemas import TradeSignal, require_trade_fields
from signal_relay.strategy_overrides import StrategyOverrides

logger = logging.getLogger(__name__)

RetryPredicate = Callable[[ExchangeAPIError], bool]


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    data: Any = None
    error: Any = None
    latency_ms: float = 0.0  # exchange round trip of the final attempt
    attempt_count: int = 0
    total_latency_ms: float = 0.0  # every attempt plus retry delays


def retry_on_codes(codes) -> RetryPredicate:
    """Predicate treating the given exchange error codes as transient."""
    retryable = frozenset(int(c) for c in codes)

    def _predicate(error: ExchangeAPIError) -> bool:
        return error.code is not None and error.code in retryable

    return _predicate


class TradeExecutor:
    """Executes trade signals against the exchange with bounded retries."""

    def __init__(
        self,
        settings: Settings,
        client,
        overrides: Optional[StrategyOverrides] = None,
        retry_predicate: Optional[RetryPredicate] = None,
        clock: Callable[[], int] = epoch_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._overrides = overrides or StrategyOverrides()
        self._api_secret = settings.mexc_api_secret
        self._recv_window = settings.recv_window
        self._max_retries = settings.max_retries
        self._retry_delay = settings.retry_delay / 1000.0
        self._deadline = settings.request_timeout_ms / 1000.0 if settings.request_timeout_ms else None
        self._is_retryable = retry_predicate or retry_on_codes(settings.retryable_error_codes)
        self._clock = clock
        self._sleep = sleep

    async def execute(self, signal: TradeSignal, request_id: str = "-") -> ExecutionResult:
        """
        Execute a signal, retrying transient failures.

        Raises:
            ValidationError: symbol/side/quantity missing (no exchange call)
            TerminalExecutionError: non-retryable error or retries exhausted
            Cancelled: the overall request deadline expired

        Only the deadline produces Cancelled. If the caller cancels the task
        (client disconnect, shutdown) the CancelledError propagates as is once
        the in-flight attempt has been logged.
        """
        require_trade_fields(signal)

        if self._deadline is None:
            return await self._run(signal, request_id, _Progress())

        progress = _Progress()
        try:
            return await asyncio.wait_for(self._run(signal, request_id, progress), self._deadline)
        except asyncio.TimeoutError:
            logger.error(
                f"[{request_id}] Trade execution cancelled after {self._deadline * 1000:.0f}ms "
                f"({progress.attempts} attempt(s))"
            )
            raise Cancelled(
                f"Trade execution exceeded {self._deadline * 1000:.0f}ms deadline",
                attempt_count=progress.attempts,
            )

    async def _run(self, signal: TradeSignal, request_id: str, progress: "_Progress") -> ExecutionResult:
        override = self._overrides.resolve(signal.strategy)
        started = time.perf_counter()

        while True:
            progress.attempts += 1
            attempt = progress.attempts
            logger.debug(f"[{request_id}] Attempt {attempt}: Building")
            order = build_order_request(
                signal,
                self._api_secret,
                self._recv_window,
                override=override,
                clock=self._clock,
            )
            logger.debug(f"[{request_id}] Attempt {attempt}: Signed (timestamp={order.timestamp})")

            attempt_started = time.perf_counter()
            try:
                logger.debug(f"[{request_id}] Attempt {attempt}: Dispatched")
                data = await self._client.place_order(order, request_id)
            except asyncio.CancelledError:
                logger.warning(f"[{request_id}] Trade execution cancelled during attempt {attempt}")
                raise
            except ExchangeError as e:
                failure = self._classify(e, attempt)
                if isinstance(failure, RetryableExecutionError) and attempt <= self._max_retries:
                    logger.info(
                        f"[{request_id}] Retrying trade execution ({attempt}/{self._max_retries}) "
                        f"after {failure.message}"
                    )
                    await self._sleep(self._retry_delay)
                    continue
                if isinstance(failure, RetryableExecutionError):
                    failure = TerminalExecutionError(
                        f"{failure.message}; retries exhausted after {attempt} attempts",
                        exchange_status=failure.exchange_status,
                        exchange_payload=failure.exchange_payload,
                        attempt_count=attempt,
                    )
                logger.error(
                    f"[{request_id}] Trade execution failed: {failure.message} "
                    f"(symbol={signal.symbol}, side={signal.side}, strategy={signal.strategy})"
                )
                raise failure from e

            latency_ms = (time.perf_counter() - attempt_started) * 1000
            total_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"[{request_id}] Trade executed successfully in {latency_ms:.2f}ms "
                f"(attempt {attempt}, symbol={signal.symbol}, side={signal.side}, "
                f"strategy={signal.strategy})"
            )
            return ExecutionResult(
                success=True,
                data=data,
                latency_ms=latency_ms,
                attempt_count=attempt,
                total_latency_ms=total_ms,
            )

    def _classify(self, error: ExchangeError, attempt: int) -> ExecutionError:
        if isinstance(error, ExchangeTimeoutError):
            return RetryableExecutionError(str(error), attempt_count=attempt)
        if isinstance(error, ExchangeAPIError) and self._is_retryable(error):
            return RetryableExecutionError(
                f"{error} (code {error.code})",
                exchange_status=error.status_code,
                exchange_payload=error.payload,
                attempt_count=attempt,
            )
        return TerminalExecutionError(
            str(error),
            exchange_status=error.status_code,
            exchange_payload=error.payload,
            attempt_count=attempt,
        )


class _Progress:
    """Attempt counter visible to execute() when the deadline fires."""

    def __init__(self):
        self.attempts = 0
