"""Opt-in retry for idempotent GET requests.

Disabled by default (``max_retries=0``): blind retries amplify vendor rate
limits. When enabled, only GET requests are retried and only for:

- network/timeout failures (no response)
- HTTP 429 (rate limit)
- HTTP 5xx (server errors)

Vendor business errors and malformed responses are never retried.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from bybitgw.gateway.errors import TransportError


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings for GET retries."""

    max_retries: int = 0  # Retry attempts (not counting initial)
    backoff_base: float = 0.25  # Base backoff delay in seconds
    backoff_max: float = 3.0  # Maximum backoff delay in seconds
    jitter_factor: float = 0.25  # Random jitter as fraction of delay

    @property
    def enabled(self) -> bool:
        return self.max_retries > 0


NO_RETRY = RetryPolicy()


def is_retryable(error: TransportError) -> bool:
    """Check whether a transport failure may be retried."""
    status = error.status_code
    if status is None:
        return True
    return status == 429 or 500 <= status < 600


def compute_backoff(
    attempt: int,
    base: float = 0.25,
    max_delay: float = 3.0,
    jitter_factor: float = 0.25,
) -> float:
    """Compute exponential backoff with jitter.

    Args:
        attempt: Retry attempt number (0-indexed)
        base: Base delay in seconds
        max_delay: Maximum delay cap
        jitter_factor: Random jitter as fraction of delay

    Returns:
        Delay in seconds
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = random.uniform(-jitter_factor, jitter_factor) * delay
    return max(0.0, delay + jitter)
