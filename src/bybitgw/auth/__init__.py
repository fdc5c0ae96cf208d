"""Credential handling and secret redaction."""

from bybitgw.auth.creds import Credentials
from bybitgw.auth.redact import (
    REDACTED,
    looks_like_secret,
    mask_string,
    redact_secrets,
    safe_dict_for_logging,
)

__all__ = [
    "Credentials",
    "REDACTED",
    "looks_like_secret",
    "mask_string",
    "redact_secrets",
    "safe_dict_for_logging",
]
