"""Tests for the wallet/chain connection state machine."""

from __future__ import annotations

import asyncio

import pytest
from conftest import OTHER, OWNER, FakeWallet, GatewayFactory, build_console

from mint_console.events import NotificationChannel
from mint_console.evm.connections import ConnectionManager
from mint_console.evm.operations import OwnerMintInputs
from mint_console.exceptions import (
    NetworkMismatchError,
    NoAccountsError,
    NotConnectedError,
    NoWalletProviderError,
    OperationError,
    ProviderRpcError,
    UnsupportedChainError,
    UserRejectedError,
)
from mint_console.types import (
    ConnectionStatus,
    MessageLevel,
    OperationKind,
    OperationStatus,
    Topic,
)

SEPOLIA = 11155111


class TestConnect:
    def test_adopts_account_and_chain(self, console):
        state = console.manager.state

        assert state.is_connected
        assert state.wallet_address == OWNER
        assert state.chain_id == 1
        assert state.provider is console.factory.gateways[1]
        assert state.signer.address == OWNER
        assert state.signer.chain_id == 1
        assert console.manager.status is ConnectionStatus.CONNECTED
        assert console.manager.intended_chain_id == 1

    def test_connect_refreshes_snapshot(self, console):
        assert console.snapshots.snapshot is not None
        assert console.snapshots.snapshot.name == "Mint Token"
        assert console.presenter.topics(Topic.SNAPSHOT)
        assert console.presenter.topics(Topic.WALLET)

    def test_status_sequence(self, console):
        statuses = [n.data["status"] for n in console.presenter.topics(Topic.CONNECTION)]
        assert statuses == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]

    def test_without_provider(self):
        manager = ConnectionManager(None, GatewayFactory(), NotificationChannel())

        with pytest.raises(NoWalletProviderError) as exc_info:
            asyncio.run(manager.connect())

        assert "desktop" in exc_info.value.install_links
        assert manager.status is ConnectionStatus.DISCONNECTED

    def test_no_accounts(self):
        env = build_console(FakeWallet(accounts=()), connect=False)

        with pytest.raises(NoAccountsError):
            asyncio.run(env.manager.connect())

        assert not env.manager.state.is_connected
        assert env.manager.status is ConnectionStatus.DISCONNECTED

    def test_user_rejects_account_request(self):
        wallet = FakeWallet()
        wallet.accounts_error = ProviderRpcError(4001, "User rejected the request.")
        env = build_console(wallet, connect=False)

        with pytest.raises(UserRejectedError):
            asyncio.run(env.manager.connect())

        assert env.manager.state.wallet_address is None

    def test_unsupported_chain(self):
        env = build_console(FakeWallet(chain_id=5), connect=False)

        with pytest.raises(UnsupportedChainError) as exc_info:
            asyncio.run(env.manager.connect())

        assert exc_info.value.chain_id == 5
        assert not env.manager.state.is_connected
        assert env.factory.built == []

    def test_disconnect_is_local(self, console):
        requests_before = len(console.wallet.requests)
        console.manager.disconnect()

        assert not console.manager.is_connected()
        assert console.manager.state.wallet_address is None
        assert console.manager.state.chain_id is None
        assert console.manager.state.provider is None
        assert len(console.wallet.requests) == requests_before
        with pytest.raises(NotConnectedError):
            console.manager.ensure_connected()

    def test_label_falls_back_to_intended_chain_after_disconnect(self, console):
        console.manager.disconnect()

        assert console.manager.network_label() == "Ethereum Mainnet"


class TestSelectNetwork:
    def test_unsupported_target_makes_no_provider_call(self, console):
        console.wallet.requests.clear()

        with pytest.raises(UnsupportedChainError):
            asyncio.run(console.manager.select_network(5))

        assert console.wallet.requests == []
        assert console.manager.intended_chain_id == 1

    def test_disconnected_switches_wallet_before_connecting(self):
        env = build_console(connect=False)

        result = asyncio.run(env.manager.select_network(SEPOLIA))

        assert result == SEPOLIA
        assert env.wallet.methods == ["wallet_switchEthereumChain", "eth_chainId"]
        assert not env.manager.state.is_connected
        assert env.manager.state.provider is None
        assert env.manager.intended_chain_id == SEPOLIA
        network = env.presenter.topics(Topic.NETWORK)
        assert network[0].data["intended_chain_id"] == SEPOLIA

    def test_select_then_connect_keeps_selected_chain(self):
        env = build_console(connect=False)

        async def scenario():
            await env.manager.select_network(SEPOLIA)
            await env.manager.connect()

        asyncio.run(scenario())

        assert env.manager.state.is_connected
        assert env.manager.state.chain_id == SEPOLIA
        assert env.manager.intended_chain_id == SEPOLIA
        assert env.manager.state.provider is env.factory.gateways[SEPOLIA]
        assert env.manager.network_label() == "Sepolia (testnet)"

    def test_switch_then_resync(self, console):
        console.wallet.requests.clear()

        result = asyncio.run(console.manager.select_network(SEPOLIA))

        assert result == SEPOLIA
        assert console.wallet.methods == ["wallet_switchEthereumChain", "eth_chainId"]
        assert console.manager.state.chain_id == SEPOLIA
        assert console.manager.state.provider is console.factory.gateways[SEPOLIA]
        assert console.manager.state.signer.chain_id == SEPOLIA
        assert console.manager.network_label() == "Sepolia (testnet)"

    def test_unknown_chain_is_added_then_switched(self):
        env = build_console(FakeWallet(known_chains=(1,)))
        env.wallet.requests.clear()

        asyncio.run(env.manager.select_network(SEPOLIA))

        assert env.wallet.methods == [
            "wallet_switchEthereumChain",
            "wallet_addEthereumChain",
            "wallet_switchEthereumChain",
            "eth_chainId",
        ]
        payload = env.wallet.requests[1][1][0]
        assert payload["chainId"] == "0xaa36a7"
        assert payload["blockExplorerUrls"] == ["https://sepolia.etherscan.io"]
        assert env.manager.state.chain_id == SEPOLIA

    def test_rejected_switch_still_resyncs(self, console):
        console.wallet.switch_error = ProviderRpcError(4001, "User rejected the request.")

        with pytest.raises(UserRejectedError):
            asyncio.run(console.manager.select_network(SEPOLIA))

        assert console.wallet.methods[-1] == "eth_chainId"
        assert console.manager.state.chain_id == 1
        assert console.manager.intended_chain_id == SEPOLIA

    def test_failed_reread_keeps_the_switch_error(self, console):
        console.wallet.switch_error = ProviderRpcError(4001, "User rejected the request.")
        console.wallet.chain_error = ProviderRpcError(-32603, "internal error")

        with pytest.raises(UserRejectedError):
            asyncio.run(console.manager.select_network(SEPOLIA))

        assert console.manager.state.chain_id == 1

    def test_failed_reread_after_switch_is_raised(self, console):
        console.wallet.chain_error = ProviderRpcError(-32603, "internal error")

        with pytest.raises(OperationError) as exc_info:
            asyncio.run(console.manager.select_network(SEPOLIA))

        assert not isinstance(exc_info.value, UserRejectedError)


class TestEnforceNetwork:
    def test_no_switch_when_already_there(self, console):
        console.wallet.requests.clear()

        assert asyncio.run(console.manager.enforce_network()) == 1
        assert console.wallet.methods == ["eth_chainId"]

    def test_switches_to_intended_chain(self, console):
        console.manager.intended_chain_id = SEPOLIA

        assert asyncio.run(console.manager.enforce_network()) == SEPOLIA
        assert console.manager.state.chain_id == SEPOLIA

    def test_mismatch_when_wallet_ignores_switch(self, console):
        console.wallet.ignore_switch = True
        console.manager.intended_chain_id = SEPOLIA

        with pytest.raises(NetworkMismatchError) as exc_info:
            asyncio.run(console.manager.enforce_network())

        assert exc_info.value.details == {"expected": SEPOLIA, "actual": 1}
        assert console.manager.state.chain_id == 1

    def test_unsupported_target_rejected_first(self, console):
        console.wallet.requests.clear()

        with pytest.raises(UnsupportedChainError):
            asyncio.run(console.manager.enforce_network(5))

        assert console.wallet.requests == []


class TestWalletEvents:
    def test_empty_accounts_disconnects(self, console):
        asyncio.run(console.wallet.emit("accountsChanged", []))

        assert not console.manager.state.is_connected
        assert console.manager.status is ConnectionStatus.DISCONNECTED

    def test_account_switch_is_adopted(self, console):
        wallet_updates = len(console.presenter.topics(Topic.WALLET))

        asyncio.run(console.wallet.emit("accountsChanged", [OTHER]))

        assert console.manager.state.wallet_address == OTHER
        assert console.manager.state.signer.address == OTHER
        assert len(console.presenter.topics(Topic.WALLET)) == wallet_updates + 1

    def test_account_change_ignored_while_disconnected(self):
        env = build_console(connect=False)

        asyncio.run(env.wallet.emit("accountsChanged", [OTHER]))

        assert not env.manager.state.is_connected
        assert env.manager.state.wallet_address is None

    def test_supported_chain_change_rebinds_contract(self, console):
        asyncio.run(console.wallet.emit("chainChanged", "0xaa36a7"))

        assert console.manager.state.chain_id == SEPOLIA
        assert console.manager.state.provider is console.factory.gateways[SEPOLIA]
        assert console.snapshots.snapshot.chain_id == SEPOLIA

    def test_chain_change_becomes_intended_chain(self, console):
        console.wallet.chain_id = SEPOLIA
        asyncio.run(console.wallet.emit("chainChanged", "0xaa36a7"))
        console.wallet.requests.clear()

        result = asyncio.run(
            console.pipeline.execute(OperationKind.OWNER_MINT, OwnerMintInputs(OTHER, 1))
        )

        assert result.status is OperationStatus.SUCCEEDED
        assert console.manager.intended_chain_id == SEPOLIA
        assert "wallet_switchEthereumChain" not in console.wallet.methods
        assert console.factory.gateways[SEPOLIA].sent
        assert console.factory.gateways[1].sent == []

    def test_unsupported_chain_change_blocks_privileged_actions(self, console):
        asyncio.run(console.wallet.emit("chainChanged", "0x5"))

        state = console.manager.state
        assert state.is_connected
        assert state.chain_id is None
        assert state.provider is None
        assert state.signer.chain_id is None
        assert console.manager.network_label() == "Unsupported network"

        warnings = console.presenter.messages(MessageLevel.WARNING)
        assert warnings[-1].data["blocking"] is True
        with pytest.raises(UnsupportedChainError):
            console.manager.ensure_connected()

    def test_chain_change_while_disconnected(self):
        env = build_console(connect=False)

        asyncio.run(env.wallet.emit("chainChanged", "0xaa36a7"))

        assert env.manager.state.chain_id == SEPOLIA
        assert env.manager.state.provider is None
        assert env.factory.built == []
