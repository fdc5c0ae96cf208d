"""Asset endpoints: balances, transfers, deposits and withdrawals (signed)."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING

from bybitgw.gateway.params import build_params

if TYPE_CHECKING:
    from bybitgw.gateway import Envelope, Gateway


class AssetApi:
    """Asset management endpoints."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def get_asset_info(self, account_type: str = "", coin: str = "") -> Envelope:
        """Query asset info per account type."""
        params = build_params(optional={"accountType": account_type, "coin": coin})
        return self._gateway.get("asset/transfer/query-asset-info", params, needs_auth=True)

    def get_coin_balance(self, coin: str, account_type: str) -> Envelope:
        """Query the balance of a single coin in one account type."""
        params = build_params({"coin": coin, "accountType": account_type})
        return self._gateway.get(
            "asset/transfer/query-account-coin-balance", params, needs_auth=True
        )

    def transfer_asset(
        self,
        coin: str,
        amount: str,
        from_account_type: str,
        to_account_type: str,
        transfer_id: str = "",
    ) -> Envelope:
        """Transfer between account types of the same UID.

        Args:
            coin: Coin to move
            amount: Amount as a decimal string
            from_account_type: Source account type
            to_account_type: Destination account type
            transfer_id: Idempotency key (UUID); generated when empty
        """
        params = build_params(
            {
                "transferId": transfer_id or str(uuid.uuid4()),
                "coin": coin,
                "amount": amount,
                "fromAccountType": from_account_type,
                "toAccountType": to_account_type,
            }
        )
        return self._gateway.post("asset/transfer/inter-transfer", params)

    def get_transfer_history(
        self,
        transfer_id: str = "",
        coin: str = "",
        status: str = "",
        start_time: int = 0,
        end_time: int = 0,
        limit: int = 0,
    ) -> Envelope:
        params = build_params(
            optional={
                "transferId": transfer_id,
                "coin": coin,
                "status": status,
                "startTime": start_time,
                "endTime": end_time,
                "limit": limit,
            }
        )
        return self._gateway.get(
            "asset/transfer/query-inter-transfer-list", params, needs_auth=True
        )

    def get_deposit_history(
        self,
        coin: str = "",
        start_time: int = 0,
        end_time: int = 0,
        limit: int = 0,
    ) -> Envelope:
        params = build_params(
            optional={"coin": coin, "startTime": start_time, "endTime": end_time, "limit": limit}
        )
        return self._gateway.get("asset/deposit/query-record", params, needs_auth=True)

    def get_withdrawal_history(
        self,
        coin: str = "",
        start_time: int = 0,
        end_time: int = 0,
        limit: int = 0,
    ) -> Envelope:
        params = build_params(
            optional={"coin": coin, "startTime": start_time, "endTime": end_time, "limit": limit}
        )
        return self._gateway.get("asset/withdraw/query-record", params, needs_auth=True)

    def withdraw(
        self,
        coin: str,
        chain: str,
        address: str,
        amount: str,
        tag: str = "",
        options: Mapping[str, str] | None = None,
    ) -> Envelope:
        """Create an on-chain withdrawal.

        Args:
            coin: Coin to withdraw
            chain: Chain name (e.g. ETH, TRX)
            address: Destination address
            amount: Amount as a decimal string
            tag: Memo/tag required by some chains
            options: Extra vendor fields (forceChain, accountType, ...)
        """
        params = build_params(
            {"coin": coin, "chain": chain, "address": address, "amount": amount},
            {"tag": tag},
            options,
        )
        return self._gateway.post("asset/withdraw/create", params)
