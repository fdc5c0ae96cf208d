"""Pydantic v2 models for common Bybit V5 payloads.

The vendor sends numbers as strings and uses "" for unset values, so
numeric fields go through ``VendorFloat``.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from bybitgw.gateway.envelope import Envelope
from bybitgw.gateway.errors import ResponseInvalidError


def _blank_to_zero(value: Any) -> Any:
    if value is None or value == "":
        return 0.0
    return value


VendorFloat = Annotated[float, BeforeValidator(_blank_to_zero)]


class _VendorModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Ticker(_VendorModel):
    """Latest market snapshot for one symbol."""

    symbol: str
    last_price: VendorFloat = Field(default=0.0, alias="lastPrice")
    bid1_price: VendorFloat = Field(default=0.0, alias="bid1Price")
    ask1_price: VendorFloat = Field(default=0.0, alias="ask1Price")
    high_price_24h: VendorFloat = Field(default=0.0, alias="highPrice24h")
    low_price_24h: VendorFloat = Field(default=0.0, alias="lowPrice24h")
    volume_24h: VendorFloat = Field(default=0.0, alias="volume24h")
    turnover_24h: VendorFloat = Field(default=0.0, alias="turnover24h")
    price_24h_pcnt: VendorFloat = Field(default=0.0, alias="price24hPcnt")

    @property
    def spread(self) -> float:
        """Best ask minus best bid (0 when either side is missing)."""
        if self.bid1_price <= 0 or self.ask1_price <= 0:
            return 0.0
        return self.ask1_price - self.bid1_price


class Order(_VendorModel):
    """Order as returned by order/realtime and order/history."""

    order_id: str = Field(alias="orderId")
    order_link_id: str = Field(default="", alias="orderLinkId")
    symbol: str
    side: str
    order_type: str = Field(default="", alias="orderType")
    order_status: str = Field(default="", alias="orderStatus")
    price: VendorFloat = 0.0
    qty: VendorFloat = 0.0
    cum_exec_qty: VendorFloat = Field(default=0.0, alias="cumExecQty")
    avg_price: VendorFloat = Field(default=0.0, alias="avgPrice")
    time_in_force: str = Field(default="", alias="timeInForce")
    created_time: str = Field(default="", alias="createdTime")
    updated_time: str = Field(default="", alias="updatedTime")

    @property
    def remaining_qty(self) -> float:
        return max(self.qty - self.cum_exec_qty, 0.0)


class Position(_VendorModel):
    """Open position for one symbol."""

    symbol: str
    side: str = ""
    size: VendorFloat = 0.0
    position_idx: int = Field(default=0, alias="positionIdx")
    avg_price: VendorFloat = Field(default=0.0, alias="avgPrice")
    mark_price: VendorFloat = Field(default=0.0, alias="markPrice")
    leverage: VendorFloat = 0.0
    position_value: VendorFloat = Field(default=0.0, alias="positionValue")
    unrealised_pnl: VendorFloat = Field(default=0.0, alias="unrealisedPnl")
    liq_price: VendorFloat = Field(default=0.0, alias="liqPrice")
    take_profit: VendorFloat = Field(default=0.0, alias="takeProfit")
    stop_loss: VendorFloat = Field(default=0.0, alias="stopLoss")


class CoinBalance(_VendorModel):
    """Per-coin balance inside a wallet."""

    coin: str
    wallet_balance: VendorFloat = Field(default=0.0, alias="walletBalance")
    equity: VendorFloat = 0.0
    usd_value: VendorFloat = Field(default=0.0, alias="usdValue")
    unrealised_pnl: VendorFloat = Field(default=0.0, alias="unrealisedPnl")
    locked: VendorFloat = 0.0


class WalletBalance(_VendorModel):
    """Wallet summary for one account type."""

    account_type: str = Field(alias="accountType")
    total_equity: VendorFloat = Field(default=0.0, alias="totalEquity")
    total_wallet_balance: VendorFloat = Field(default=0.0, alias="totalWalletBalance")
    total_available_balance: VendorFloat = Field(default=0.0, alias="totalAvailableBalance")
    total_margin_balance: VendorFloat = Field(default=0.0, alias="totalMarginBalance")
    coin: list[CoinBalance] = Field(default_factory=list)

    def get_coin(self, name: str) -> CoinBalance | None:
        for entry in self.coin:
            if entry.coin == name:
                return entry
        return None


ModelT = TypeVar("ModelT", bound=BaseModel)


def decode_list(envelope: Envelope, model: type[ModelT]) -> list[ModelT]:
    """Decode ``payload["list"]`` into typed models.

    Args:
        envelope: Successful envelope
        model: Model class for each entry

    Returns:
        Decoded entries

    Raises:
        ResponseInvalidError: If the payload has no list or an entry does not fit
    """
    payload = envelope.payload
    if not isinstance(payload, dict) or not isinstance(payload.get("list"), list):
        raise ResponseInvalidError(f"payload has no list to decode as {model.__name__}")

    try:
        return [model.model_validate(item) for item in payload["list"]]
    except ValidationError as e:
        raise ResponseInvalidError(f"cannot decode {model.__name__}: {e}") from e
