"""Error taxonomy for the signed request gateway.

Three failure layers are kept apart:

1. ``TransportError``: no response, timeout, or a non-2xx HTTP status
2. ``ResponseInvalidError``: the body is not a well-formed envelope
3. ``VendorError``: a well-formed envelope with a non-zero ``retCode``

All three derive from ``GatewayError`` and carry exactly one ``ErrorKind``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bybitgw.gateway.envelope import Envelope


class ErrorKind(str, Enum):
    """Internal error classification."""

    INVALID_PARAMETER = "InvalidParameter"
    INVALID_SIGNATURE = "InvalidSignature"
    AUTH_FAILED = "AuthFailed"
    RATE_LIMITED = "RateLimited"
    PERMISSION_DENIED = "PermissionDenied"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    SERVER_ERROR = "ServerError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    REQUEST_FAILED = "RequestFailed"
    RESPONSE_INVALID = "ResponseInvalid"
    UNKNOWN = "Unknown"


# Inclusive (low, high) vendor retCode ranges, checked in order.
# Unverified against current vendor docs; keep edits to this table.
VENDOR_CODE_RANGES: list[tuple[int, int, ErrorKind]] = [
    (10001, 10003, ErrorKind.INVALID_PARAMETER),
    (10004, 10004, ErrorKind.INVALID_SIGNATURE),
    (10005, 10005, ErrorKind.AUTH_FAILED),
    (10006, 10007, ErrorKind.PERMISSION_DENIED),
    (10010, 10010, ErrorKind.RATE_LIMITED),
    (20001, 20044, ErrorKind.REQUEST_FAILED),
    (30000, 30099, ErrorKind.INSUFFICIENT_BALANCE),
    (110001, 110999, ErrorKind.REQUEST_FAILED),
]

HTTP_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID_PARAMETER,
    401: ErrorKind.AUTH_FAILED,
    403: ErrorKind.PERMISSION_DENIED,
    429: ErrorKind.RATE_LIMITED,
    500: ErrorKind.SERVER_ERROR,
    503: ErrorKind.SERVICE_UNAVAILABLE,
}


def classify_vendor_code(code: int) -> ErrorKind | None:
    """Map a vendor ``retCode`` to an error kind.

    Args:
        code: Vendor return code

    Returns:
        None for success (0), otherwise the matching kind
    """
    if code == 0:
        return None
    for low, high, kind in VENDOR_CODE_RANGES:
        if low <= code <= high:
            return kind
    return ErrorKind.UNKNOWN


def classify_http_status(status: int) -> ErrorKind | None:
    """Map an HTTP status code to an error kind.

    Args:
        status: HTTP status code

    Returns:
        None for 2xx, otherwise the matching kind
    """
    if 200 <= status < 300:
        return None
    return HTTP_STATUS_KINDS.get(status, ErrorKind.UNKNOWN)


class GatewayError(Exception):
    """Base exception for gateway failures."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        vendor_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.body = body
        self.vendor_code = vendor_code

    def __str__(self) -> str:
        text = f"[{self.kind.value}] {self.message}"
        if self.__cause__ is not None:
            text += f": {self.__cause__}"
        return text


class TransportError(GatewayError):
    """The HTTP exchange failed or returned a non-2xx status."""

    @classmethod
    def from_status(cls, status_code: int, body: str) -> TransportError:
        """Build the error for a non-2xx response."""
        kind = classify_http_status(status_code) or ErrorKind.UNKNOWN
        return cls(
            kind,
            f"HTTP {status_code}",
            status_code=status_code,
            body=body,
        )


class ResponseInvalidError(GatewayError):
    """The response body is not a valid envelope."""

    def __init__(self, message: str, body: str | None = None) -> None:
        super().__init__(ErrorKind.RESPONSE_INVALID, message, body=body)


class VendorError(GatewayError):
    """The vendor answered with a non-zero ``retCode``."""

    def __init__(self, envelope: Envelope) -> None:
        kind = classify_vendor_code(envelope.code) or ErrorKind.UNKNOWN
        super().__init__(kind, envelope.message, vendor_code=envelope.code)
        self.envelope = envelope

    def __str__(self) -> str:
        return f"[{self.kind.value}] vendor error {self.vendor_code}: {self.message}"
