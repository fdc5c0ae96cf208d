"""HMAC-SHA256 request signing.

Signature payload::

    str(timestamp_ms) + api_key + key1 + value1 + key2 + value2 + ...

with keys in ascending order. The digest is keyed by the API secret and
rendered as lowercase hex.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from bybitgw.gateway.params import canonical_items

if TYPE_CHECKING:
    from bybitgw.auth.creds import Credentials

HEADER_API_KEY = "X-BAPI-API-KEY"
HEADER_TIMESTAMP = "X-BAPI-TIMESTAMP"
HEADER_SIGN = "X-BAPI-SIGN"


def timestamp_ms(clock: Callable[[], float] = time.time) -> int:
    """Current time in integer milliseconds since the epoch."""
    return int(clock() * 1000)


def signature_payload(params: Mapping[str, str], api_key: str, timestamp: int) -> str:
    """Build the canonical string that gets signed."""
    parts = [str(timestamp), api_key]
    for key, value in canonical_items(params):
        parts.append(key)
        parts.append(value)
    return "".join(parts)


def sign(params: Mapping[str, str], api_key: str, api_secret: str, timestamp: int) -> str:
    """Compute the request signature.

    Args:
        params: ParamSet being sent (query or body parameters)
        api_key: API key
        api_secret: API secret (HMAC key); empty is allowed
        timestamp: Millisecond timestamp sent alongside

    Returns:
        Lowercase hex HMAC-SHA256 digest
    """
    payload = signature_payload(params, api_key, timestamp)
    return hmac.new(api_secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def auth_headers(
    credentials: Credentials,
    params: Mapping[str, str],
    timestamp: int,
) -> dict[str, str]:
    """Return the three authentication headers for a request."""
    return {
        HEADER_API_KEY: credentials.api_key,
        HEADER_TIMESTAMP: str(timestamp),
        HEADER_SIGN: sign(params, credentials.api_key, credentials.api_secret, timestamp),
    }
