"""Order management endpoints (signed)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from bybitgw.gateway.params import build_params

if TYPE_CHECKING:
    from bybitgw.gateway import Envelope, Gateway

ORDER_TYPE_MARKET = "Market"


class OrderApi:
    """Create, amend, cancel and query orders."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def create_order(
        self,
        category: str,
        symbol: str,
        side: str,
        order_type: str,
        qty: float,
        price: float = 0.0,
        options: Mapping[str, str] | None = None,
    ) -> Envelope:
        """Place an order.

        Args:
            category: spot, linear, inverse, option
            symbol: Symbol name
            side: Buy or Sell
            order_type: Market or Limit
            qty: Order quantity
            price: Limit price (ignored for Market orders)
            options: Extra vendor fields (timeInForce, orderLinkId,
                takeProfit, stopLoss, reduceOnly, ...)

        Returns:
            Envelope whose payload holds ``orderId`` and ``orderLinkId``
        """
        optional: dict[str, object] = {}
        if order_type != ORDER_TYPE_MARKET:
            optional["price"] = price

        params = build_params(
            {
                "category": category,
                "symbol": symbol,
                "side": side,
                "orderType": order_type,
                "qty": qty,
            },
            optional,
            options,
        )
        return self._gateway.post("order/create", params)

    def amend_order(
        self,
        category: str,
        symbol: str,
        order_id: str = "",
        order_link_id: str = "",
        qty: float = 0.0,
        price: float = 0.0,
        options: Mapping[str, str] | None = None,
    ) -> Envelope:
        """Modify an open order identified by order_id or order_link_id."""
        params = build_params(
            {"category": category, "symbol": symbol},
            {"orderId": order_id, "orderLinkId": order_link_id, "qty": qty, "price": price},
            options,
        )
        return self._gateway.post("order/amend", params)

    def cancel_order(
        self,
        category: str,
        symbol: str,
        order_id: str = "",
        order_link_id: str = "",
    ) -> Envelope:
        params = build_params(
            {"category": category, "symbol": symbol},
            {"orderId": order_id, "orderLinkId": order_link_id},
        )
        return self._gateway.post("order/cancel", params)

    def cancel_all_orders(
        self,
        category: str,
        symbol: str = "",
        settle_coin: str = "",
    ) -> Envelope:
        params = build_params({"category": category}, {"symbol": symbol, "settleCoin": settle_coin})
        return self._gateway.post("order/cancel-all", params)

    def get_open_orders(
        self,
        category: str,
        symbol: str = "",
        order_id: str = "",
        order_link_id: str = "",
        limit: int = 0,
    ) -> Envelope:
        """Query unfilled or partially filled orders."""
        params = build_params(
            {"category": category},
            {
                "symbol": symbol,
                "orderId": order_id,
                "orderLinkId": order_link_id,
                "limit": limit,
            },
        )
        return self._gateway.get("order/realtime", params, needs_auth=True)

    def get_order_history(
        self,
        category: str,
        symbol: str = "",
        order_id: str = "",
        order_link_id: str = "",
        order_status: str = "",
        limit: int = 0,
    ) -> Envelope:
        """Query closed orders."""
        params = build_params(
            {"category": category},
            {
                "symbol": symbol,
                "orderId": order_id,
                "orderLinkId": order_link_id,
                "orderStatus": order_status,
                "limit": limit,
            },
        )
        return self._gateway.get("order/history", params, needs_auth=True)
