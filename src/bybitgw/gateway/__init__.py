"""Signed request gateway for the Bybit V5 REST API.

This package provides:
- ParamSet builders and canonical encoders (params)
- HMAC-SHA256 request signing (signer)
- HTTP dispatch with auth headers (dispatcher)
- Envelope parsing and error taxonomy (envelope, errors)
- Gateway / AsyncGateway composition roots (client)
"""

from bybitgw.gateway.client import AsyncGateway, Gateway
from bybitgw.gateway.dispatcher import (
    AsyncRequestDispatcher,
    HttpMethod,
    RequestDispatcher,
)
from bybitgw.gateway.envelope import Envelope, parse_envelope
from bybitgw.gateway.errors import (
    ErrorKind,
    GatewayError,
    ResponseInvalidError,
    TransportError,
    VendorError,
    classify_http_status,
    classify_vendor_code,
)
from bybitgw.gateway.params import ParamSet, build_params, encode_query, format_value
from bybitgw.gateway.retry import RetryPolicy
from bybitgw.gateway.signer import sign, timestamp_ms

__all__ = [
    # Composition roots
    "Gateway",
    "AsyncGateway",
    # Dispatch
    "HttpMethod",
    "RequestDispatcher",
    "AsyncRequestDispatcher",
    "RetryPolicy",
    # Envelope and errors
    "Envelope",
    "parse_envelope",
    "ErrorKind",
    "GatewayError",
    "TransportError",
    "ResponseInvalidError",
    "VendorError",
    "classify_http_status",
    "classify_vendor_code",
    # Params and signing
    "ParamSet",
    "build_params",
    "encode_query",
    "format_value",
    "sign",
    "timestamp_ms",
]
