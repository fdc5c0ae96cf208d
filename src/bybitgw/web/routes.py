"""API routes for the gateway service."""

import inspect
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bybitgw import __version__
from bybitgw.api import BybitClient
from bybitgw.gateway.errors import ErrorKind, GatewayError, VendorError
from bybitgw.logging import get_logger

logger = get_logger("web")

router = APIRouter()

# Callable operations: "<resource>.<method>"
OPERATIONS: dict[str, tuple[str, str]] = {
    f"{resource}.{method}": (resource, method)
    for resource, methods in {
        "market": [
            "get_kline",
            "get_orderbook",
            "get_tickers",
            "get_instruments",
            "get_recent_trades",
        ],
        "order": [
            "create_order",
            "amend_order",
            "cancel_order",
            "cancel_all_orders",
            "get_open_orders",
            "get_order_history",
        ],
        "position": [
            "get_positions",
            "set_leverage",
            "set_trading_stop",
            "switch_position_mode",
            "set_tpsl_mode",
            "set_risk_limit",
        ],
        "account": [
            "get_wallet_balance",
            "get_fee_rate",
            "get_account_info",
            "set_margin_mode",
        ],
        "asset": [
            "get_asset_info",
            "get_coin_balance",
            "transfer_asset",
            "get_transfer_history",
            "get_deposit_history",
            "get_withdrawal_history",
            "withdraw",
        ],
    }.items()
    for method in methods
}

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_PARAMETER: 400,
    ErrorKind.INVALID_SIGNATURE: 401,
    ErrorKind.AUTH_FAILED: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
}


class RpcRequest(BaseModel):
    """Operation call: ``{"requestId": ..., "method": ..., "params": {...}}``."""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(default="", alias="requestId")
    method: str
    params: dict[str, Any] = Field(default_factory=dict)


def get_client(request: Request) -> BybitClient:
    """Get the client installed by ``create_app``."""
    return request.app.state.client


def _reply(
    request_id: str,
    status: int,
    code: int,
    message: str,
    data: Any = None,
    error_kind: str | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "requestId": request_id,
        "code": code,
        "message": message,
        "data": data,
    }
    if error_kind is not None:
        content["errorKind"] = error_kind
    return JSONResponse(status_code=status, content=content)


def _error_reply(request_id: str, error: GatewayError) -> JSONResponse:
    status = ERROR_STATUS.get(error.kind, 502)
    if isinstance(error, VendorError):
        code = error.vendor_code or 0
    else:
        code = error.status_code or status
    return _reply(request_id, status, code, error.message, error_kind=error.kind.value)


@router.get("/api/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status with timestamp and version
    """
    return {
        "ok": True,
        "time": datetime.now(UTC).isoformat(),
        "version": __version__,
    }


@router.get("/api/operations")
def list_operations() -> dict[str, Any]:
    """List callable operation names."""
    names = sorted(OPERATIONS)
    return {"operations": names, "count": len(names)}


@router.post("/api/rpc")
def call_operation(body: RpcRequest, request: Request) -> JSONResponse:
    """Invoke one resource operation.

    Returns:
        ``{requestId, code, message, data}``; ``data`` holds the vendor
        ``result`` on success
    """
    target = OPERATIONS.get(body.method)
    if target is None:
        return _reply(
            body.request_id,
            404,
            404,
            f"Unknown method: {body.method}",
            error_kind=ErrorKind.INVALID_PARAMETER.value,
        )

    resource, method = target
    operation = getattr(getattr(get_client(request), resource), method)
    try:
        inspect.signature(operation).bind(**body.params)
    except TypeError as e:
        return _reply(
            body.request_id,
            400,
            400,
            f"Bad params for {body.method}: {e}",
            error_kind=ErrorKind.INVALID_PARAMETER.value,
        )

    try:
        envelope = operation(**body.params)
    except GatewayError as e:
        logger.warning(f"rpc {body.method} failed: {e}")
        return _error_reply(body.request_id, e)

    return _reply(body.request_id, 200, envelope.code, envelope.message, envelope.payload)
