"""Request parameter sets.

A ParamSet is a plain ``dict[str, str]``. Key order never matters: the
query encoder and the signer both work on the sorted items.

Resource methods build ParamSets with ``build_params``:

- ``required`` entries are always present
- ``optional`` entries are dropped when they hold a zero value
  (None, "", 0, 0.0, False)
- ``extras`` (free-form vendor options) are merged last; they may add keys
  or replace optional ones but never overwrite a required key

A required entry holding None, or extras that are not a mapping, raise
``GatewayError`` with kind InvalidParameter before anything is sent.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

from bybitgw.gateway.errors import ErrorKind, GatewayError
from bybitgw.logging import get_logger

logger = get_logger("gateway.params")

ParamSet = dict[str, str]


def format_value(value: Any) -> str:
    """Render a parameter value the way the vendor expects it.

    Floats use the shortest round-tripping decimal form without exponent
    (``0.0001``, not ``1e-04``); bools are ``true``/``false``.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def is_zero_value(value: Any) -> bool:
    """Check whether an optional argument should be omitted."""
    return value is None or value == "" or value is False or value == 0


def build_params(
    required: Mapping[str, Any] | None = None,
    optional: Mapping[str, Any] | None = None,
    extras: Mapping[str, str] | None = None,
) -> ParamSet:
    """Assemble a ParamSet.

    Args:
        required: Entries always sent, even when empty
        optional: Entries sent only when not a zero value
        extras: Caller-supplied vendor options merged last

    Returns:
        New ParamSet

    Raises:
        GatewayError: With kind InvalidParameter for a None required value
            or non-mapping extras
    """
    missing = sorted(k for k, v in (required or {}).items() if v is None)
    if missing:
        raise GatewayError(
            ErrorKind.INVALID_PARAMETER, f"Missing required parameter(s): {', '.join(missing)}"
        )
    if extras is not None and not isinstance(extras, Mapping):
        raise GatewayError(
            ErrorKind.INVALID_PARAMETER,
            f"Options must be a mapping of vendor fields, got {type(extras).__name__}",
        )

    params: ParamSet = {k: format_value(v) for k, v in (required or {}).items()}

    for key, value in (optional or {}).items():
        if not is_zero_value(value):
            params[key] = format_value(value)

    for key, value in (extras or {}).items():
        if required and key in required:
            logger.warning(f"Ignoring option {key!r}: it would overwrite a required parameter")
            continue
        params[key] = format_value(value)

    return params


def canonical_items(params: Mapping[str, str]) -> list[tuple[str, str]]:
    """Return parameter items sorted by key."""
    return sorted(params.items())


def encode_query(params: Mapping[str, str]) -> str:
    """Percent-encode a ParamSet as a query string with sorted keys."""
    return urlencode(canonical_items(params))


def encode_body(params: Mapping[str, str]) -> bytes:
    """Serialize a ParamSet as a compact JSON object with sorted keys."""
    return json.dumps(dict(canonical_items(params)), separators=(",", ":")).encode("utf-8")
