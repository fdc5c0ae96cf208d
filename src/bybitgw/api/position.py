"""Position management endpoints (signed)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from bybitgw.gateway.params import build_params

if TYPE_CHECKING:
    from bybitgw.gateway import Envelope, Gateway


class PositionApi:
    """Positions, leverage, TP/SL and risk limits."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def get_positions(
        self,
        category: str,
        symbol: str = "",
        settle_coin: str = "",
        position_idx: str = "",
    ) -> Envelope:
        """Query open positions.

        Either symbol or settle_coin is required by the vendor for
        linear/inverse categories.
        """
        params = build_params(
            {"category": category},
            {"symbol": symbol, "settleCoin": settle_coin, "positionIdx": position_idx},
        )
        return self._gateway.get("position/list", params, needs_auth=True)

    def set_leverage(
        self,
        category: str,
        symbol: str,
        buy_leverage: float,
        sell_leverage: float,
    ) -> Envelope:
        params = build_params(
            {
                "category": category,
                "symbol": symbol,
                "buyLeverage": buy_leverage,
                "sellLeverage": sell_leverage,
            }
        )
        return self._gateway.post("position/set-leverage", params)

    def set_trading_stop(
        self,
        category: str,
        symbol: str,
        take_profit: float = 0.0,
        stop_loss: float = 0.0,
        options: Mapping[str, str] | None = None,
    ) -> Envelope:
        """Set take profit / stop loss for a position.

        Args:
            category: linear or inverse
            symbol: Symbol name
            take_profit: TP price (omitted when 0)
            stop_loss: SL price (omitted when 0)
            options: Extra vendor fields (tpslMode, positionIdx, ...)
        """
        params = build_params(
            {"category": category, "symbol": symbol},
            {"takeProfit": take_profit, "stopLoss": stop_loss},
            options,
        )
        return self._gateway.post("position/trading-stop", params)

    def switch_position_mode(
        self,
        category: str,
        symbol: str = "",
        mode: str = "",
        coin: str = "",
    ) -> Envelope:
        """Switch between one-way (0) and hedge (3) mode."""
        params = build_params(
            {"category": category},
            {"symbol": symbol, "coin": coin, "mode": mode},
        )
        return self._gateway.post("position/switch-mode", params)

    def set_tpsl_mode(self, category: str, symbol: str, tp_sl_mode: str) -> Envelope:
        params = build_params({"category": category, "symbol": symbol, "tpSlMode": tp_sl_mode})
        return self._gateway.post("position/set-tpsl-mode", params)

    def set_risk_limit(
        self,
        category: str,
        symbol: str,
        risk_id: int,
        position_idx: str = "",
    ) -> Envelope:
        params = build_params(
            {"category": category, "symbol": symbol, "riskId": risk_id},
            {"positionIdx": position_idx},
        )
        return self._gateway.post("position/set-risk-limit", params)
