"""Read-side refresh of the contract snapshot and wallet summary."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..base import ContractGateway
from ..classifier import classify_error
from ..constants import ZERO_ADDRESS, get_network_profile
from ..events import NotificationChannel
from ..types import ContractSnapshot, Topic, WalletSummary
from .connections import ConnectionManager
from .queries import read_role

logger = logging.getLogger(__name__)

# Snapshot field -> contract getter; every read must succeed for a refresh to land.
SNAPSHOT_READS: dict[str, str] = {
    "name": "name",
    "symbol": "symbol",
    "total_supply": "totalSupply",
    "max_supply": "maxSupply",
    "max_mint_amount": "maxMintAmount",
    "max_allowlist_batch_size": "maxWhitelistBatchSize",
    "max_operator_mint_amount": "maxOperatorMintAmount",
    "paused": "paused",
    "allowlist_sale_open": "whitelistStart",
    "public_sale_open": "publicStart",
    "allowlist_price_wei": "whitelistCost",
    "public_price_wei": "publicCost",
    "sale_end_token_id": "saleEndTokenId",
    "withdrawal_address": "withdrawalAddress",
}


async def read_total_minted(gateway: ContractGateway) -> int:
    """Read ``totalMinted``, falling back to ``totalSupply`` on contracts without it."""

    try:
        return int(await gateway.call("totalMinted"))
    except Exception as exc:
        logger.debug("totalMinted unavailable (%s); using totalSupply", exc)
        return int(await gateway.call("totalSupply"))


async def read_snapshot(gateway: ContractGateway) -> ContractSnapshot:
    fields = list(SNAPSHOT_READS)
    results = await asyncio.gather(
        *(gateway.call(SNAPSHOT_READS[field]) for field in fields),
        read_total_minted(gateway),
        gateway.get_balance(str(gateway.contract_address)),
    )
    values: dict[str, Any] = dict(zip(fields, results[: len(fields)]))
    total_minted, balance = results[len(fields) :]

    withdrawal = values.pop("withdrawal_address")
    if not withdrawal or str(withdrawal).lower() == ZERO_ADDRESS:
        withdrawal = None

    return ContractSnapshot(
        chain_id=gateway.chain_id,
        contract_address=gateway.contract_address,
        total_minted=int(total_minted),
        balance_wei=int(balance),
        withdrawal_address=withdrawal,
        **values,
    )


class SnapshotService:
    """Rebuild the dashboard projection after connects, chain changes and successful writes."""

    def __init__(self, connections: ConnectionManager, channel: NotificationChannel) -> None:
        self._connections = connections
        self._channel = channel
        self.snapshot: ContractSnapshot | None = None
        self.wallet: WalletSummary | None = None

    async def refresh(self) -> ContractSnapshot | None:
        """Re-read everything; on failure keep the last good snapshot."""

        gateway = self._connections.state.provider
        if gateway is None:
            return self.snapshot

        if not gateway.is_configured:
            label = get_network_profile(gateway.chain_id).label()
            snapshot = ContractSnapshot.unconfigured(
                gateway.chain_id, f"No contract address is configured for {label}"
            )
        else:
            try:
                snapshot = await read_snapshot(gateway)
            except Exception as exc:
                error = classify_error(exc)
                logger.exception("Failed to refresh contract snapshot on chain %s", gateway.chain_id)
                self._channel.error(
                    f"Failed to load contract state: {error.message}", kind=error.kind.value
                )
                return self.snapshot

        self.snapshot = snapshot
        self._channel.state(Topic.SNAPSHOT, snapshot=snapshot)
        await self.refresh_wallet()
        return snapshot

    async def refresh_wallet(self) -> WalletSummary | None:
        """Read balance, token balance and role; each degrades to None independently."""

        state = self._connections.state
        gateway = state.provider
        if gateway is None or state.wallet_address is None:
            return self.wallet

        address = state.wallet_address
        reads: list[Any] = [gateway.get_balance(address)]
        if gateway.is_configured:
            reads += [gateway.call("balanceOf", address), read_role(gateway, address)]
        results = await asyncio.gather(*reads, return_exceptions=True)

        values: list[Any] = []
        for label, result in zip(("native balance", "token balance", "role"), results):
            if isinstance(result, BaseException):
                logger.warning("Failed to read %s for %s: %s", label, address, result)
                values.append(None)
            else:
                values.append(result)
        values += [None] * (3 - len(values))

        native, tokens, role = values
        self.wallet = WalletSummary(
            address=address,
            native_balance_wei=None if native is None else int(native),
            token_balance=None if tokens is None else int(tokens),
            role=role,
        )
        self._channel.state(Topic.WALLET, wallet=self.wallet)
        return self.wallet
