"""Capability interfaces consumed by the mint console core."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from .constants import parse_chain_id
from .types import Notification

ProviderListener = Callable[[Any], Awaitable[None] | None]

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"


class WalletProvider(ABC):
    """Wallet capability modelled on an EIP-1193 provider."""

    @abstractmethod
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        pass

    @abstractmethod
    def on(self, event: str, listener: ProviderListener) -> None:
        pass

    async def request_accounts(self) -> list[str]:
        accounts = await self.request("eth_requestAccounts")
        return list(accounts or [])

    async def get_chain_id(self) -> int | None:
        return parse_chain_id(await self.request("eth_chainId"))

    async def switch_chain(self, chain_id: int) -> None:
        await self.request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])

    async def add_chain(self, payload: Mapping[str, Any]) -> None:
        await self.request("wallet_addEthereumChain", [dict(payload)])


class TransactionHandle(ABC):
    """A submitted transaction that can be awaited for its receipt."""

    hash: str

    @abstractmethod
    async def wait(self) -> Mapping[str, Any]:
        pass


class ContractGateway(ABC):
    """Contract capability bound to one chain and one contract address."""

    chain_id: int
    contract_address: str | None

    @property
    def is_configured(self) -> bool:
        return bool(self.contract_address) and int(str(self.contract_address), 16) != 0

    @abstractmethod
    async def call(self, method: str, *args: Any) -> Any:
        pass

    @abstractmethod
    async def estimate_gas(self, method: str, args: Sequence[Any], *, sender: str) -> int:
        pass

    @abstractmethod
    async def transact(
        self, method: str, args: Sequence[Any], *, sender: str, gas_limit: int
    ) -> TransactionHandle:
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        pass


class Presenter(ABC):
    """Presentation layer: renders notifications and owns confirmation prompts."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass

    @abstractmethod
    async def confirm(self, prompt: str) -> bool:
        pass
