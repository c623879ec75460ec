"""
Domain exceptions for the relay.

The verifier, executor and exchange layer raise these instead of
fastapi.HTTPException to avoid coupling the core to the web framework.
A global exception handler in main.py translates them into HTTP responses.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed trade signal fields (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class Unauthenticated(AppError):
    """Missing or invalid webhook signature (401)."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status_code=401)


class RateLimitError(AppError):
    """Too many requests (429)."""

    def __init__(self, message: str, retry_after: int = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class PayloadTooLarge(AppError):
    """Webhook body over the configured size limit (413)."""

    def __init__(self, message: str = "Request body too large"):
        super().__init__(message, status_code=413)


class ExecutionError(AppError):
    """Trade execution failed after the exchange call (500).

    Carries the exchange's error payload and HTTP status (when the exchange
    answered at all) plus how many dispatch attempts were made.
    """

    def __init__(
        self,
        message: str,
        exchange_status: Optional[int] = None,
        exchange_payload: Any = None,
        attempt_count: int = 0,
    ):
        self.exchange_status = exchange_status
        self.exchange_payload = exchange_payload
        self.attempt_count = attempt_count
        super().__init__(message, status_code=500)

    def details(self) -> dict:
        return {
            "exchangeStatus": self.exchange_status,
            "exchangeError": self.exchange_payload,
            "attempts": self.attempt_count,
        }


class RetryableExecutionError(ExecutionError):
    """Transient failure (timeout or stale-signature response) eligible for retry."""


class TerminalExecutionError(ExecutionError):
    """Non-retryable exchange error, or retries exhausted."""


class Cancelled(AppError):
    """Execution aborted by the request deadline (504)."""

    def __init__(self, message: str = "Trade execution cancelled", attempt_count: int = 0):
        self.attempt_count = attempt_count
        super().__init__(message, status_code=504)
