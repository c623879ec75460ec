"""
Webhook signature verification.

TradingView (or the proxy in front of it) signs each alert with
HMAC-SHA256 over the exact JSON body bytes using the shared webhook secret
and sends the hex digest in the x-tv-signature header.
"""

import hashlib
import hmac
import logging
from typing import Optional

from signal_relay.exceptions import Unauthenticated

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-tv-signature"

# Only this many hex chars of any digest ever reach the logs
_LOG_PREFIX_LEN = 10


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the body bytes as received (never re-serialized)."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def _prefix(value: str) -> str:
    return value[:_LOG_PREFIX_LEN] + "..."


def verify_signature(
    raw_body: bytes,
    presented: Optional[str],
    secret: str,
    request_id: str = "-",
) -> bool:
    """
    Check a presented signature against the body.

    Args:
        raw_body: Request body bytes exactly as received
        presented: Value of the x-tv-signature header (None when absent)
        secret: Webhook shared secret
        request_id: Correlation id for the audit record

    Returns:
        True only when the header is present and equals the computed digest
    """
    if not presented:
        logger.error(
            f"[{request_id}] Missing signature header",
            extra={"request_id": request_id, "signature_match": False},
        )
        return False

    computed = compute_signature(raw_body, secret)
    # Constant-time; non-ASCII input must not raise TypeError
    match = hmac.compare_digest(presented.encode("utf-8"), computed.encode("utf-8"))

    audit = {
        "request_id": request_id,
        "received_prefix": _prefix(presented),
        "computed_prefix": _prefix(computed),
        "signature_match": match,
    }
    logger.debug(f"[{request_id}] Verifying signature", extra=audit)
    if not match:
        logger.error(
            f"[{request_id}] Invalid signature (received {audit['received_prefix']}, "
            f"computed {audit['computed_prefix']}, secret length {len(secret)})",
            extra=audit,
        )
    return match


class SignatureVerifier:
    """Gate for the webhook endpoint, bound to the configured secret."""

    def __init__(self, secret: str):
        if not secret:
            logger.warning("Webhook secret is empty - signatures are computed with an empty key")
        self._secret = secret

    def verify(self, raw_body: bytes, presented: Optional[str], request_id: str = "-") -> bool:
        return verify_signature(raw_body, presented, self._secret, request_id)

    def require(self, raw_body: bytes, presented: Optional[str], request_id: str = "-") -> None:
        """Raise Unauthenticated unless the signature is valid."""
        if not self.verify(raw_body, presented, request_id):
            raise Unauthenticated("Invalid signature" if presented else "Missing signature header")
