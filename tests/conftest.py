"""Shared fakes for the wallet, contract and presentation capabilities."""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Mapping, Sequence
from types import SimpleNamespace
from typing import Any

import pytest

from mint_console.base import ContractGateway, Presenter, TransactionHandle, WalletProvider
from mint_console.events import NotificationChannel
from mint_console.evm.connections import ConnectionManager
from mint_console.evm.snapshot import SnapshotService
from mint_console.evm.transactions import TransactionPipeline
from mint_console.exceptions import ProviderRpcError
from mint_console.types import MessageLevel, Notification, Topic

OWNER = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x3333333333333333333333333333333333333333"
TX_HASH = "0x" + "ab" * 32

ADMIN_ROLE_ID = b"\x00" * 32
OPERATOR_ROLE_ID = b"\x01" * 32


def default_reads() -> dict[str, Any]:
    return {
        "name": "Mint Token",
        "symbol": "MINT",
        "totalSupply": 10,
        "totalMinted": 10,
        "maxSupply": 1000,
        "maxMintAmount": 12,
        "maxWhitelistBatchSize": 300,
        "maxOperatorMintAmount": 100,
        "paused": False,
        "whitelistStart": True,
        "publicStart": False,
        "whitelistCost": 10**16,
        "publicCost": 2 * 10**16,
        "saleEndTokenId": 500,
        "withdrawalAddress": OWNER,
        "currentEpoch": 3,
        "OPERATOR_ROLE": OPERATOR_ROLE_ID,
        "DEFAULT_ADMIN_ROLE": ADMIN_ROLE_ID,
        "hasRole": lambda role, account: role == ADMIN_ROLE_ID and account == OWNER,
        "balanceOf": lambda account: 2,
        "whitelist": lambda account: account == OWNER,
        "tokenURI": lambda token_id: f"ipfs://base/{token_id}",
        "whitelistMintStatus": lambda account: (True, True, 10**16, 11, 500, 490, 3, 1, 1),
        "publicMintStatus": lambda account: (False, 2 * 10**16, 11, 500, 490, 3, 0, 12),
        "getUserMintInfo": lambda account: (3, 1, 2, 3, 1, 10, 11),
    }


class FakeWallet(WalletProvider):
    """In-memory EIP-1193 style wallet recording every request."""

    def __init__(
        self,
        accounts: Sequence[str] = (OWNER,),
        chain_id: int = 1,
        known_chains: Sequence[int] = (1, 11155111),
    ) -> None:
        self.accounts = list(accounts)
        self.chain_id = chain_id
        self.known_chains = set(known_chains)
        self.requests: list[tuple[str, list[Any]]] = []
        self.listeners: dict[str, list[Any]] = defaultdict(list)
        self.accounts_error: Exception | None = None
        self.switch_error: Exception | None = None
        self.add_error: Exception | None = None
        self.chain_error: Exception | None = None
        self.ignore_switch = False

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]

    def on(self, event: str, listener: Any) -> None:
        self.listeners[event].append(listener)

    async def emit(self, event: str, payload: Any) -> None:
        for listener in self.listeners[event]:
            result = listener(payload)
            if inspect.isawaitable(result):
                await result

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        params = list(params or [])
        self.requests.append((method, params))

        if method == "eth_requestAccounts":
            if self.accounts_error is not None:
                raise self.accounts_error
            return list(self.accounts)
        if method == "eth_chainId":
            if self.chain_error is not None:
                raise self.chain_error
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_error is not None:
                raise self.switch_error
            target = int(params[0]["chainId"], 16)
            if target not in self.known_chains:
                raise ProviderRpcError(ProviderRpcError.UNRECOGNIZED_CHAIN, "Unrecognized chain ID")
            if not self.ignore_switch:
                self.chain_id = target
            return None
        if method == "wallet_addEthereumChain":
            if self.add_error is not None:
                raise self.add_error
            self.known_chains.add(int(params[0]["chainId"], 16))
            return None
        raise ProviderRpcError(-32601, f"Method {method} not supported")


class FakeHandle(TransactionHandle):
    def __init__(self, tx_hash: str, gateway: FakeGateway) -> None:
        self.hash = tx_hash
        self._gateway = gateway

    async def wait(self) -> Mapping[str, Any]:
        self._gateway.waited += 1
        if self._gateway.wait_error is not None:
            raise self._gateway.wait_error
        return self._gateway.receipt


class FakeGateway(ContractGateway):
    """Contract capability serving reads from a dict and recording writes."""

    def __init__(
        self,
        chain_id: int = 1,
        contract_address: str | None = CONTRACT,
        reads: dict[str, Any] | None = None,
    ) -> None:
        self.chain_id = chain_id
        self.contract_address = contract_address
        self.reads = reads if reads is not None else default_reads()
        self.balances: dict[str, int] = {CONTRACT: 5 * 10**17, OWNER: 10**18}
        self.estimate = 100_000
        self.estimate_error: Exception | None = None
        self.transact_error: Exception | None = None
        self.wait_error: Exception | None = None
        self.receipt: dict[str, Any] = {"status": 1, "blockNumber": 42}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.estimates: list[tuple[str, tuple[Any, ...], str]] = []
        self.sent: list[dict[str, Any]] = []
        self.waited = 0

    async def call(self, method: str, *args: Any) -> Any:
        self.calls.append((method, args))
        value = self.reads[method]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(*args)
        return value

    async def estimate_gas(self, method: str, args: Sequence[Any], *, sender: str) -> int:
        self.estimates.append((method, tuple(args), sender))
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.estimate

    async def transact(
        self, method: str, args: Sequence[Any], *, sender: str, gas_limit: int
    ) -> TransactionHandle:
        if self.transact_error is not None:
            raise self.transact_error
        self.sent.append({"method": method, "args": tuple(args), "sender": sender, "gas": gas_limit})
        return FakeHandle(TX_HASH, self)

    async def get_balance(self, address: str) -> int:
        value = self.balances.get(address, 0)
        if isinstance(value, Exception):
            raise value
        return value


class GatewayFactory:
    """Build one FakeGateway per chain, all sharing the same read table."""

    def __init__(self, contract_address: str | None = CONTRACT) -> None:
        self.contract_address = contract_address
        self.reads = default_reads()
        self.gateways: dict[int, FakeGateway] = {}
        self.built: list[int] = []

    def __call__(self, chain_id: int) -> FakeGateway:
        self.built.append(chain_id)
        if chain_id not in self.gateways:
            self.gateways[chain_id] = FakeGateway(chain_id, self.contract_address, self.reads)
        return self.gateways[chain_id]


class RecordingPresenter(Presenter):
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.notifications: list[Notification] = []
        self.prompts: list[str] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    async def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer

    def messages(self, level: MessageLevel | None = None) -> list[Notification]:
        return [
            n
            for n in self.notifications
            if n.topic is Topic.MESSAGE and (level is None or n.level is level)
        ]

    def topics(self, topic: Topic) -> list[Notification]:
        return [n for n in self.notifications if n.topic is topic]


def build_console(
    wallet: FakeWallet | None = None,
    *,
    presenter: RecordingPresenter | None = None,
    contract_address: str | None = CONTRACT,
    connect: bool = True,
) -> SimpleNamespace:
    """Wire manager, snapshot service and pipeline around fakes."""

    wallet = wallet if wallet is not None else FakeWallet()
    presenter = presenter or RecordingPresenter()
    factory = GatewayFactory(contract_address)
    channel = NotificationChannel(presenter)
    manager = ConnectionManager(wallet, factory, channel)
    snapshots = SnapshotService(manager, channel)
    manager.set_refresh_callback(snapshots.refresh)
    pipeline = TransactionPipeline(manager, channel, on_success=snapshots.refresh)

    if connect:
        asyncio.run(manager.connect())

    return SimpleNamespace(
        wallet=wallet,
        presenter=presenter,
        factory=factory,
        channel=channel,
        manager=manager,
        snapshots=snapshots,
        pipeline=pipeline,
    )


@pytest.fixture
def console() -> SimpleNamespace:
    return build_console()
