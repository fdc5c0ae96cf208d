"""Composed Bybit client.

Groups the resource collaborators around one shared gateway::

    with BybitClient.from_settings(get_settings()) as client:
        envelope = client.market.get_tickers("spot", "BTCUSDT")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bybitgw.api.account import AccountApi
from bybitgw.api.asset import AssetApi
from bybitgw.api.market import MarketApi
from bybitgw.api.order import OrderApi
from bybitgw.api.position import PositionApi
from bybitgw.gateway import Gateway

if TYPE_CHECKING:
    import httpx

    from bybitgw.config import Settings
    from bybitgw.logging import LoggerProtocol


class BybitClient:
    """Bybit V5 client exposing market, order, position, account and asset APIs."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway
        self.market = MarketApi(gateway)
        self.order = OrderApi(gateway)
        self.position = PositionApi(gateway)
        self.account = AccountApi(gateway)
        self.asset = AssetApi(gateway)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        logger: LoggerProtocol | None = None,
        http_client: httpx.Client | None = None,
    ) -> BybitClient:
        """Create a client from application settings."""
        return cls(Gateway.from_config(settings.bybit, logger=logger, http_client=http_client))

    @property
    def gateway(self) -> Gateway:
        return self._gateway

    def close(self) -> None:
        self._gateway.close()

    def __enter__(self) -> BybitClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
