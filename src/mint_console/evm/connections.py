"""Wallet/chain lifecycle for the mint console."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from web3 import Web3

from ..base import ACCOUNTS_CHANGED, CHAIN_CHANGED, ContractGateway, WalletProvider
from ..classifier import classify_error
from ..constants import DEFAULT_CHAIN_ID, get_network_profile, is_supported_chain, parse_chain_id
from ..events import NotificationChannel
from ..exceptions import (
    NetworkMismatchError,
    NoAccountsError,
    NotConnectedError,
    NoWalletProviderError,
    OperationError,
    ProviderRpcError,
    UnsupportedChainError,
)
from ..types import ConnectionState, ConnectionStatus, SignerHandle, Topic

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[int], ContractGateway]
RefreshCallback = Callable[[], Awaitable[None]]


class ConnectionManager:
    """Own the wallet address, chain id and contract handles.

    All mutation of :class:`ConnectionState` goes through this class, either from
    explicit calls or from the wallet's ``accountsChanged``/``chainChanged`` events.
    """

    def __init__(
        self,
        provider: WalletProvider | None,
        gateway_factory: GatewayFactory,
        channel: NotificationChannel,
        *,
        default_chain_id: int = DEFAULT_CHAIN_ID,
        on_refresh: RefreshCallback | None = None,
    ) -> None:
        self._provider = provider
        self._gateway_factory = gateway_factory
        self._channel = channel
        self._on_refresh = on_refresh
        self.state = ConnectionState()
        self.status = ConnectionStatus.DISCONNECTED
        self.intended_chain_id = default_chain_id

        if provider is not None:
            provider.on(ACCOUNTS_CHANGED, self.handle_accounts_changed)
            provider.on(CHAIN_CHANGED, self.handle_chain_changed)

    def set_refresh_callback(self, callback: RefreshCallback | None) -> None:
        self._on_refresh = callback

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> ConnectionState:
        """Request account access and adopt the wallet's current chain."""

        provider = self._require_provider()
        was_connected = self.state.is_connected
        self._set_status(ConnectionStatus.CONNECTING)

        try:
            try:
                accounts = await provider.request_accounts()
            except Exception as exc:
                raise classify_error(exc) from exc
            if not accounts:
                raise NoAccountsError()

            chain_id = await self._read_chain()
            if not is_supported_chain(chain_id):
                raise UnsupportedChainError(chain_id)
        except OperationError:
            self._set_status(
                ConnectionStatus.CONNECTED if was_connected else ConnectionStatus.DISCONNECTED
            )
            raise

        self._adopt(accounts[0], chain_id)
        self.intended_chain_id = chain_id
        logger.info("Connected wallet %s on chain %s", self.state.wallet_address, chain_id)
        self._set_status(ConnectionStatus.CONNECTED)
        self._notify_network()
        await self._refresh()
        return self.state

    def disconnect(self) -> None:
        """Forget the wallet locally; provider-level permissions are untouched."""

        self.state.clear()
        logger.info("Wallet disconnected")
        self._set_status(ConnectionStatus.DISCONNECTED)

    def ensure_connected(self) -> None:
        if not self.state.is_connected or self.state.wallet_address is None:
            raise NotConnectedError()
        if self.state.chain_id is None or self.state.provider is None:
            raise UnsupportedChainError(
                self.state.chain_id, "The wallet is on an unsupported network; switch networks first"
            )

    def is_connected(self) -> bool:
        return self.state.is_connected

    @property
    def gateway(self) -> ContractGateway:
        self.ensure_connected()
        assert self.state.provider is not None
        return self.state.provider

    def network_label(self) -> str:
        chain_id = self.state.chain_id
        if chain_id is None and not self.state.is_connected:
            chain_id = self.intended_chain_id
        if not is_supported_chain(chain_id):
            return "Unsupported network"
        return get_network_profile(chain_id).label()

    # ------------------------------------------------------------------
    # Network selection
    # ------------------------------------------------------------------
    async def select_network(self, target_chain_id: int) -> int | None:
        """Record the intended chain and ask the wallet to move there.

        The wallet may ignore or reject the request, so the chain it reports
        afterwards is adopted whatever the outcome. The switch is requested
        even before connecting, so ``connect()`` finds the wallet on the
        selected chain. Returns the chain id the wallet reports.
        """

        if not is_supported_chain(target_chain_id):
            raise UnsupportedChainError(target_chain_id)

        self.intended_chain_id = target_chain_id
        self._channel.state(
            Topic.NETWORK,
            get_network_profile(target_chain_id).label(),
            intended_chain_id=target_chain_id,
        )
        if self._provider is None:
            return self.state.chain_id

        switch_error: OperationError | None = None
        try:
            await self._request_switch(target_chain_id)
        except OperationError as exc:
            switch_error = exc

        try:
            actual = await self._read_chain()
        except OperationError as exc:
            if switch_error is None:
                raise
            logger.warning("Could not re-read the wallet chain after a failed switch: %s", exc.message)
            raise switch_error from exc
        await self.handle_chain_changed(actual)

        if switch_error is not None:
            raise switch_error
        return self.state.chain_id

    async def enforce_network(self, target_chain_id: int | None = None) -> int:
        """Make sure the wallet sits on the intended chain before a privileged call."""

        target = self.intended_chain_id if target_chain_id is None else target_chain_id
        if not is_supported_chain(target):
            raise UnsupportedChainError(target)

        current = await self._read_chain()
        if current == target:
            return current

        logger.info("Wallet is on chain %s, switching to %s", current, target)
        await self._request_switch(target)

        actual = await self._read_chain()
        await self.handle_chain_changed(actual)
        if actual != target:
            raise NetworkMismatchError(
                f"The wallet is still on chain {actual}; switch to "
                f"{get_network_profile(target).label()} and try again",
                details={"expected": target, "actual": actual},
            )
        return actual

    # ------------------------------------------------------------------
    # Wallet notifications
    # ------------------------------------------------------------------
    async def handle_accounts_changed(self, accounts: Sequence[str] | None) -> None:
        accounts = list(accounts or [])
        if not accounts:
            if self.state.is_connected:
                logger.info("Wallet reported no accounts; disconnecting")
                self.disconnect()
            return

        if not self.state.is_connected:
            logger.debug("Ignoring account change while disconnected")
            return

        address = Web3.to_checksum_address(accounts[0])
        if address == self.state.wallet_address:
            return

        logger.info("Wallet account changed to %s", address)
        self._adopt(address, self.state.chain_id)
        self._set_status(ConnectionStatus.CONNECTED)
        await self._refresh()

    async def handle_chain_changed(self, raw_chain_id: Any) -> None:
        chain_id = parse_chain_id(raw_chain_id)
        if chain_id == self.state.chain_id and (
            self.state.provider is not None or not self.state.is_connected
        ):
            return

        if not is_supported_chain(chain_id):
            logger.warning("Wallet moved to unsupported chain %s", raw_chain_id)
            self.state.chain_id = None
            self.state.provider = None
            if self.state.wallet_address is not None:
                self.state.signer = SignerHandle(self.state.wallet_address, None)
            self._notify_network()
            self._channel.warning(
                f"Unsupported network (chain id {raw_chain_id}). Privileged actions are "
                "blocked until the wallet is switched to a supported network.",
                chain_id=chain_id,
                blocking=True,
            )
            return

        if not self.state.is_connected:
            self.state.chain_id = chain_id
            self._notify_network()
            return

        assert chain_id is not None
        logger.info("Wallet chain changed to %s", chain_id)
        self._adopt(self.state.wallet_address, chain_id)
        self.intended_chain_id = chain_id
        self._notify_network()
        await self._refresh()

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _require_provider(self) -> WalletProvider:
        if self._provider is None:
            raise NoWalletProviderError()
        return self._provider

    async def _read_chain(self) -> int | None:
        provider = self._require_provider()
        try:
            return await provider.get_chain_id()
        except Exception as exc:
            raise classify_error(exc) from exc

    async def _request_switch(self, chain_id: int) -> None:
        provider = self._require_provider()
        try:
            await provider.switch_chain(chain_id)
            return
        except Exception as exc:
            if getattr(exc, "code", None) != ProviderRpcError.UNRECOGNIZED_CHAIN:
                raise classify_error(exc) from exc

        logger.info("Wallet does not know chain %s; requesting add-chain", chain_id)
        try:
            await provider.add_chain(get_network_profile(chain_id).chain_add_payload)
            await provider.switch_chain(chain_id)
        except Exception as exc:
            raise classify_error(exc) from exc

    def _adopt(self, address: str | None, chain_id: int | None) -> None:
        assert address is not None
        wallet = Web3.to_checksum_address(address)
        self.state.wallet_address = wallet
        self.state.chain_id = chain_id
        self.state.signer = SignerHandle(wallet, chain_id)
        self.state.provider = self._gateway_factory(chain_id) if chain_id is not None else None
        self.state.is_connected = True

    def _set_status(self, status: ConnectionStatus) -> None:
        self.status = status
        self._channel.state(
            Topic.CONNECTION,
            status.value,
            status=status,
            address=self.state.wallet_address,
        )

    def _notify_network(self) -> None:
        self._channel.state(
            Topic.NETWORK,
            self.network_label(),
            chain_id=self.state.chain_id,
            supported=is_supported_chain(self.state.chain_id),
        )

    async def _refresh(self) -> None:
        if self._on_refresh is None:
            return
        try:
            await self._on_refresh()
        except Exception:
            logger.exception("Contract state refresh failed")
