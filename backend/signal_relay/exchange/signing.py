"""
MEXC request signing.

The exchange recomputes HMAC-SHA256 over the query string it receives, so
the string we sign must be byte-identical to the one we send: keys sorted
lexicographically, values percent-encoded like JavaScript's
encodeURIComponent, joined as key=value&...
"""

import hashlib
import hmac
from typing import Any, Mapping
from urllib.parse import quote

# encodeURIComponent leaves A-Z a-z 0-9 - _ . ! ~ * ' ( ) unescaped
_UNRESERVED = "-_.!~*'()"


def format_param(value: Any) -> str:
    """Render a parameter value the way the exchange expects it in a query."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_query(params: Mapping[str, Any]) -> str:
    """Sorted, encoded key=value&... string. Insertion order never matters."""
    return "&".join(
        f"{key}={quote(format_param(params[key]), safe=_UNRESERVED)}"
        for key in sorted(params)
    )


def sign_params(params: Mapping[str, Any], secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical query string."""
    return hmac.new(
        secret.encode("utf-8"), canonical_query(params).encode("utf-8"), hashlib.sha256
    ).hexdigest()
