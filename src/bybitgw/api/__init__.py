"""Resource collaborators built on the gateway."""

from bybitgw.api.account import AccountApi
from bybitgw.api.asset import AssetApi
from bybitgw.api.client import BybitClient
from bybitgw.api.market import MarketApi
from bybitgw.api.order import OrderApi
from bybitgw.api.position import PositionApi

__all__ = [
    "AccountApi",
    "AssetApi",
    "BybitClient",
    "MarketApi",
    "OrderApi",
    "PositionApi",
]
