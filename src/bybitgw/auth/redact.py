"""Redaction utilities to prevent secrets from appearing in logs.

Request parameters and headers pass through ``safe_dict_for_logging``
before they are logged; error text from the transport passes through
``redact_secrets``.

USAGE:
    from bybitgw.auth.redact import redact_secrets, REDACTED

    safe_msg = redact_secrets(f"Signature was {signature}")
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from re import Pattern

# Placeholder for redacted content
REDACTED = "***REDACTED***"

# Patterns for common secret formats
SECRET_PATTERNS: list[tuple[str, Pattern[str]]] = [
    # HMAC-SHA256 hex digests (X-BAPI-SIGN values)
    ("signature", re.compile(r"\b[a-fA-F0-9]{64}\b")),
    # Bybit API secrets are 36 mixed-case alphanumerics
    ("api_secret", re.compile(r"\b(?=[A-Za-z0-9]*[a-z])(?=[A-Za-z0-9]*[A-Z])[A-Za-z0-9]{32,}\b")),
    # Base64 secrets (common lengths)
    ("secret", re.compile(r"\b[A-Za-z0-9+/]{40,}={0,2}")),
]

# Keys whose values are always redacted (compared case-insensitively)
DEFAULT_REDACT_KEYS = frozenset(
    {
        "api_key",
        "apikey",
        "api-key",
        "api_secret",
        "apisecret",
        "api-secret",
        "secret",
        "sign",
        "signature",
        "x-bapi-api-key",
        "x-bapi-sign",
        "password",
        "token",
    }
)


def redact_secrets(text: str, replacement: str = REDACTED) -> str:
    """Redact known secret patterns from text.

    Args:
        text: Input text that may contain secrets
        replacement: String to replace secrets with

    Returns:
        Text with secrets replaced
    """
    result = text
    for _name, pattern in SECRET_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def looks_like_secret(value: str) -> bool:
    """Check if a string looks like a secret."""
    return any(pattern.fullmatch(value) for _name, pattern in SECRET_PATTERNS)


def mask_string(value: str, visible_chars: int = 4) -> str:
    """Mask a string showing only first and last N characters.

    Example:
        >>> mask_string("1234567890abcdef", visible_chars=4)
        "1234...cdef"
    """
    if len(value) <= visible_chars * 2:
        return "*" * len(value)
    return f"{value[:visible_chars]}...{value[-visible_chars:]}"


def safe_dict_for_logging(
    data: Mapping[str, object], redact_keys: set[str] | None = None
) -> dict[str, object]:
    """Create a copy of a mapping safe for logging by redacting secrets.

    Args:
        data: Mapping that may contain secrets (params, headers)
        redact_keys: Additional keys to redact (case-insensitive)

    Returns:
        Copy of the mapping with secret values replaced
    """
    all_redact_keys = DEFAULT_REDACT_KEYS | {k.lower() for k in redact_keys or set()}

    result: dict[str, object] = {}
    for k, v in data.items():
        if k.lower() in all_redact_keys or (isinstance(v, str) and looks_like_secret(v)):
            result[k] = REDACTED
        elif isinstance(v, Mapping):
            result[k] = safe_dict_for_logging(v, redact_keys)
        else:
            result[k] = v
    return result
