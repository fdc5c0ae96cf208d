"""Account endpoints (signed)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bybitgw.gateway.params import build_params

if TYPE_CHECKING:
    from bybitgw.gateway import Envelope, Gateway

ACCOUNT_TYPE_UNIFIED = "UNIFIED"
ACCOUNT_TYPE_CONTRACT = "CONTRACT"
ACCOUNT_TYPE_SPOT = "SPOT"


class AccountApi:
    """Wallet balance, fee rates and account settings."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def get_wallet_balance(self, account_type: str = ACCOUNT_TYPE_UNIFIED, coin: str = "") -> Envelope:
        """Get wallet balance.

        Args:
            account_type: UNIFIED, CONTRACT or SPOT
            coin: Comma-separated coin filter (e.g. "USDT,BTC")
        """
        params = build_params({"accountType": account_type}, {"coin": coin})
        return self._gateway.get("account/wallet-balance", params, needs_auth=True)

    def get_fee_rate(self, category: str, symbol: str = "") -> Envelope:
        params = build_params({"category": category}, {"symbol": symbol})
        return self._gateway.get("account/fee-rate", params, needs_auth=True)

    def get_account_info(self) -> Envelope:
        """Get margin mode and account status."""
        return self._gateway.get("account/info", needs_auth=True)

    def set_margin_mode(self, margin_mode: str) -> Envelope:
        """Set ISOLATED_MARGIN, REGULAR_MARGIN or PORTFOLIO_MARGIN."""
        params = build_params({"setMarginMode": margin_mode})
        return self._gateway.post("account/set-margin-mode", params)
