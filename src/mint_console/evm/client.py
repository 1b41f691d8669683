"""Mint console facade wiring connection, pipeline and read-side components."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from ..allowlist import AllowListEditor, AllowListSlots, BatchPreview
from ..base import ContractGateway, Presenter, WalletProvider
from ..events import NotificationChannel
from ..exceptions import NoWalletProviderError, OperationError
from ..types import (
    BatchMode,
    ConnectionState,
    ContractSnapshot,
    LimitKind,
    OperationKind,
    OperationResult,
    Role,
    SaleKind,
    WalletSummary,
)
from .config import ConsoleConfig
from .connections import ConnectionManager, GatewayFactory
from .operations import (
    AllowListBatchInputs,
    AllowListEntryInputs,
    BaseUriInputs,
    LimitInputs,
    OwnerMintInputs,
    PauseInputs,
    RoleInputs,
    RoyaltyInputs,
    SaleConfigInputs,
    SaleFlagInputs,
    StartNewRoundInputs,
    WithdrawalAddressInputs,
    WithdrawInputs,
)
from .providers import LocalAccountProvider, Web3GatewayFactory
from .queries import ContractQueries
from .snapshot import SnapshotService
from .transactions import TransactionPipeline

logger = logging.getLogger(__name__)

Amount = str | int | float | Decimal


def _missing_gateway(chain_id: int) -> ContractGateway:
    raise NoWalletProviderError()


class MintConsole:
    """Operator console for the token contract.

    Privileged actions return an :class:`OperationResult` and never raise;
    connection and query failures raise :class:`OperationError` subclasses
    after being reported on the notification channel.
    """

    def __init__(
        self,
        provider: WalletProvider | None,
        *,
        config: ConsoleConfig | None = None,
        presenter: Presenter | None = None,
        gateway_factory: GatewayFactory | None = None,
    ) -> None:
        self.config = config or ConsoleConfig()
        self.channel = NotificationChannel(presenter)

        if gateway_factory is None:
            gateway_factory = (
                Web3GatewayFactory(provider, self.config) if provider is not None else _missing_gateway
            )

        self.connections = ConnectionManager(
            provider,
            gateway_factory,
            self.channel,
            default_chain_id=self.config.default_chain_id,
        )
        self.snapshots = SnapshotService(self.connections, self.channel)
        self.pipeline = TransactionPipeline(self.connections, self.channel)
        self.queries = ContractQueries(self.connections)
        self.connections.set_refresh_callback(self.refresh)
        self.pipeline.set_refresh_callback(self.refresh)

        self.allowlist_editors: dict[BatchMode, AllowListEditor] = {
            BatchMode.ADD: AllowListSlots(BatchMode.ADD),
            BatchMode.REMOVE: AllowListSlots(BatchMode.REMOVE),
        }

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        *,
        config: ConsoleConfig | None = None,
        presenter: Presenter | None = None,
    ) -> MintConsole:
        config = config or ConsoleConfig.from_env()
        return cls(LocalAccountProvider(private_key, config), config=config, presenter=presenter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> ConnectionState:
        try:
            return await self.connections.connect()
        except NoWalletProviderError as exc:
            self.channel.error(exc.message, kind=exc.kind.value, install_links=exc.install_links)
            raise
        except OperationError as exc:
            self.channel.error(exc.message, kind=exc.kind.value)
            raise

    def disconnect(self) -> None:
        self.connections.disconnect()

    async def select_network(self, chain_id: int) -> int | None:
        try:
            return await self.connections.select_network(chain_id)
        except OperationError as exc:
            self.channel.error(exc.message, kind=exc.kind.value)
            raise

    async def refresh(self) -> ContractSnapshot | None:
        return await self.snapshots.refresh()

    @property
    def state(self) -> ConnectionState:
        return self.connections.state

    @property
    def snapshot(self) -> ContractSnapshot | None:
        return self.snapshots.snapshot

    @property
    def wallet(self) -> WalletSummary | None:
        return self.snapshots.wallet

    @property
    def is_busy(self) -> bool:
        return self.pipeline.guard.is_busy

    # ------------------------------------------------------------------
    # Privileged operations
    # ------------------------------------------------------------------
    async def execute(self, kind: OperationKind, inputs: Any) -> OperationResult:
        return await self.pipeline.execute(kind, inputs)

    async def owner_mint(self, recipient: str, amount: int | str) -> OperationResult:
        return await self.execute(OperationKind.OWNER_MINT, OwnerMintInputs(recipient, amount))

    async def add_allowlist(self, entries: Sequence[str] | None = None) -> OperationResult:
        return await self._allowlist_batch(BatchMode.ADD, entries)

    async def remove_allowlist(self, entries: Sequence[str] | None = None) -> OperationResult:
        return await self._allowlist_batch(BatchMode.REMOVE, entries)

    async def set_allowlist_entry(self, address: str, allowed: bool) -> OperationResult:
        return await self.execute(
            OperationKind.SET_ALLOWLIST_ENTRY, AllowListEntryInputs(address, allowed)
        )

    async def start_new_round(self) -> OperationResult:
        return await self.execute(OperationKind.START_NEW_ROUND, StartNewRoundInputs())

    async def set_sale_config(
        self,
        allowlist_price: Amount,
        public_price: Amount,
        end_token_id: int | str,
        allowlist_open: bool,
        public_open: bool,
    ) -> OperationResult:
        inputs = SaleConfigInputs(
            allowlist_price, public_price, end_token_id, allowlist_open, public_open
        )
        return await self.execute(OperationKind.SET_SALE_CONFIG, inputs)

    async def set_sale_open(self, sale: SaleKind, open: bool) -> OperationResult:
        return await self.execute(OperationKind.SET_SALE_FLAG, SaleFlagInputs(sale, open))

    async def set_limit(self, limit: LimitKind, value: int | str) -> OperationResult:
        return await self.execute(OperationKind.SET_LIMIT, LimitInputs(limit, value))

    async def set_base_uri(self, uri: str) -> OperationResult:
        return await self.execute(OperationKind.SET_BASE_URI, BaseUriInputs(uri))

    async def set_paused(self, paused: bool) -> OperationResult:
        return await self.execute(OperationKind.SET_PAUSED, PauseInputs(paused))

    async def set_royalty(self, receiver: str, percentage: Amount) -> OperationResult:
        return await self.execute(OperationKind.SET_ROYALTY, RoyaltyInputs(receiver, percentage))

    async def set_withdrawal_address(self, address: str) -> OperationResult:
        return await self.execute(
            OperationKind.SET_WITHDRAWAL_ADDRESS, WithdrawalAddressInputs(address)
        )

    async def withdraw(self) -> OperationResult:
        return await self.execute(OperationKind.WITHDRAW, WithdrawInputs())

    async def grant_role(self, role: Role, account: str) -> OperationResult:
        return await self.execute(OperationKind.GRANT_ROLE, RoleInputs(role, account))

    async def revoke_role(self, role: Role, account: str) -> OperationResult:
        return await self.execute(OperationKind.REVOKE_ROLE, RoleInputs(role, account))

    # ------------------------------------------------------------------
    # Allow-list editors
    # ------------------------------------------------------------------
    def allowlist_editor(self, mode: BatchMode) -> AllowListEditor:
        return self.allowlist_editors[mode]

    def preview_allowlist(self, mode: BatchMode) -> BatchPreview:
        return self.allowlist_editors[mode].preview()

    async def _allowlist_batch(
        self, mode: BatchMode, entries: Sequence[str] | None
    ) -> OperationResult:
        editor = self.allowlist_editors[mode]
        values = list(entries) if entries is not None else editor.raw_values()
        kind = OperationKind.ADD_ALLOWLIST if mode is BatchMode.ADD else OperationKind.REMOVE_ALLOWLIST

        result = await self.execute(kind, AllowListBatchInputs(values))
        if result.success and entries is None:
            editor.clear()
        return result
