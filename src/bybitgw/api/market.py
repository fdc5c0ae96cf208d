"""Market data endpoints (public, unsigned)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bybitgw.gateway.params import build_params

if TYPE_CHECKING:
    from bybitgw.gateway import Envelope, Gateway

# Product categories
CATEGORY_SPOT = "spot"
CATEGORY_LINEAR = "linear"


class MarketApi:
    """Kline, orderbook, ticker, instrument and trade data."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def get_kline(
        self,
        category: str,
        symbol: str,
        interval: str,
        limit: int = 0,
        start: int = 0,
        end: int = 0,
    ) -> Envelope:
        """Get candlesticks.

        Args:
            category: spot, linear, inverse
            symbol: Symbol name (e.g. BTCUSDT)
            interval: 1,3,5,15,30,60,120,240,360,720,D,W,M
            limit: Max candles (vendor default 200)
            start: Start timestamp in ms
            end: End timestamp in ms
        """
        params = build_params(
            {"category": category, "symbol": symbol, "interval": interval},
            {"limit": limit, "start": start, "end": end},
        )
        return self._gateway.get("market/kline", params)

    def get_orderbook(self, category: str, symbol: str, limit: int = 0) -> Envelope:
        """Get orderbook depth."""
        params = build_params({"category": category, "symbol": symbol}, {"limit": limit})
        return self._gateway.get("market/orderbook", params)

    def get_tickers(self, category: str, symbol: str = "") -> Envelope:
        """Get latest price snapshot, best bid/ask and 24h volume."""
        params = build_params({"category": category}, {"symbol": symbol})
        return self._gateway.get("market/tickers", params)

    def get_instruments(self, category: str, symbol: str = "", status: str = "") -> Envelope:
        """Get instrument specifications (tick size, lot size, ...)."""
        params = build_params({"category": category}, {"symbol": symbol, "status": status})
        return self._gateway.get("market/instruments-info", params)

    def get_recent_trades(self, category: str, symbol: str, limit: int = 0) -> Envelope:
        params = build_params({"category": category, "symbol": symbol}, {"limit": limit})
        return self._gateway.get("market/recent-trade", params)
