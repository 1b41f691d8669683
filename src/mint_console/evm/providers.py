"""web3.py backed wallet and contract capabilities."""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Any, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract

from ..base import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    ContractGateway,
    ProviderListener,
    TransactionHandle,
    WalletProvider,
)
from ..constants import parse_chain_id
from ..exceptions import MalformedInputError, ProviderRpcError
from .abi import MintConsoleToken_abi
from .config import ConsoleConfig

logger = logging.getLogger(__name__)


def build_async_web3(rpc_url: str, request_timeout: float) -> AsyncWeb3:
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))


class LocalAccountProvider(WalletProvider):
    """Wallet capability backed by a local private key and JSON-RPC endpoints.

    Chains are "known" to the wallet when an RPC URL was configured for them or
    registered through ``wallet_addEthereumChain``; switching to any other chain
    fails with the 4902 code a browser wallet would return.
    """

    def __init__(self, private_key: str, config: ConsoleConfig, *, chain_id: int | None = None):
        try:
            self._account = cast(LocalAccount, Account.from_key(private_key))
        except Exception as exc:
            raise MalformedInputError(
                "Failed to derive signer account from provided private key",
                details={"error": str(exc)},
            ) from exc

        self._config = config
        self._chain_id = chain_id or config.default_chain_id
        self._rpc_urls: dict[int, str] = dict(config.rpc_urls)
        self._rpc_urls.setdefault(self._chain_id, config.rpc_url(self._chain_id))
        self._web3: dict[int, AsyncWeb3] = {}
        self._listeners: dict[str, list[ProviderListener]] = defaultdict(list)
        self._authorized = False

    @property
    def address(self) -> ChecksumAddress:
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def web3(self, chain_id: int | None = None) -> AsyncWeb3:
        target = self._chain_id if chain_id is None else chain_id
        if target not in self._web3:
            rpc_url = self._rpc_urls.get(target) or self._config.rpc_url(target)
            self._web3[target] = build_async_web3(rpc_url, self._config.request_timeout)
        return self._web3[target]

    # ------------------------------------------------------------------
    # EIP-1193 surface
    # ------------------------------------------------------------------
    def on(self, event: str, listener: ProviderListener) -> None:
        self._listeners[event].append(listener)

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        params = list(params or [])

        if method == "eth_requestAccounts":
            self._authorized = True
            return [self.address]
        if method == "eth_accounts":
            return [self.address] if self._authorized else []
        if method == "eth_chainId":
            return hex(self._chain_id)
        if method == "wallet_switchEthereumChain":
            return await self._switch_chain(params)
        if method == "wallet_addEthereumChain":
            return self._add_chain(params)
        if method == "eth_sendTransaction":
            return await self._send_transaction(params)

        response = await self.web3().provider.make_request(method, params)  # type: ignore[arg-type]
        if "error" in response:
            error = response["error"]
            raise ProviderRpcError(error.get("code"), error.get("message", ""), error.get("data"))
        return response.get("result")

    async def lock(self) -> None:
        """Revoke account access, as a wallet does when the user locks it."""

        self._authorized = False
        await self._emit(ACCOUNTS_CHANGED, [])

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    async def _switch_chain(self, params: list[Any]) -> None:
        chain_id = parse_chain_id(params[0].get("chainId") if params else None)
        if chain_id is None:
            raise ProviderRpcError(-32602, "Invalid chainId parameter")
        if chain_id not in self._rpc_urls:
            raise ProviderRpcError(
                ProviderRpcError.UNRECOGNIZED_CHAIN,
                f"Unrecognized chain ID {hex(chain_id)}. Try adding the chain first.",
            )
        if chain_id == self._chain_id:
            return None

        self._chain_id = chain_id
        logger.info("Local wallet switched to chain %s", chain_id)
        await self._emit(CHAIN_CHANGED, hex(chain_id))
        return None

    def _add_chain(self, params: list[Any]) -> None:
        payload: Mapping[str, Any] = params[0] if params else {}
        chain_id = parse_chain_id(payload.get("chainId"))
        rpc_urls = list(payload.get("rpcUrls") or [])
        if chain_id is None or not rpc_urls:
            raise ProviderRpcError(-32602, "wallet_addEthereumChain requires chainId and rpcUrls")

        self._rpc_urls[chain_id] = self._config.rpc_urls.get(chain_id) or rpc_urls[0]
        self._web3.pop(chain_id, None)
        logger.info("Local wallet registered chain %s (%s)", chain_id, payload.get("chainName"))
        return None

    async def _send_transaction(self, params: list[Any]) -> str:
        if not params:
            raise ProviderRpcError(-32602, "eth_sendTransaction requires a transaction")

        tx = dict(params[0])
        tx.pop("from", None)
        web3 = self.web3()
        tx.setdefault("chainId", self._chain_id)
        tx["nonce"] = await web3.eth.get_transaction_count(self.address, "pending")

        signed = self._account.sign_transaction(tx)
        tx_hash = await web3.eth.send_raw_transaction(signed.raw_transaction)
        return HexBytes(tx_hash).to_0x_hex()

    async def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            result = listener(payload)
            if inspect.isawaitable(result):
                await result


class Web3TransactionHandle(TransactionHandle):
    def __init__(self, web3: AsyncWeb3, tx_hash: str, receipt_timeout: float) -> None:
        self.hash = tx_hash
        self._web3 = web3
        self._receipt_timeout = receipt_timeout

    async def wait(self) -> Mapping[str, Any]:
        receipt = await self._web3.eth.wait_for_transaction_receipt(
            HexBytes(self.hash), timeout=self._receipt_timeout
        )
        return dict(receipt)


class Web3ContractGateway(ContractGateway):
    """Contract capability: reads over RPC, writes signed by the wallet provider."""

    def __init__(
        self,
        wallet: WalletProvider,
        web3: AsyncWeb3,
        chain_id: int,
        contract_address: str | None,
        *,
        receipt_timeout: float,
    ) -> None:
        self.chain_id = chain_id
        self.contract_address = contract_address
        self._wallet = wallet
        self._web3 = web3
        self._receipt_timeout = receipt_timeout
        self._contract: AsyncContract | None = None
        if contract_address:
            self._contract = web3.eth.contract(
                address=Web3.to_checksum_address(contract_address), abi=MintConsoleToken_abi
            )

    @property
    def contract(self) -> AsyncContract:
        if self._contract is None:
            raise MalformedInputError(
                f"No contract address configured for chain {self.chain_id}",
                details={"chain_id": self.chain_id},
            )
        return self._contract

    def _function(self, method: str, args: Sequence[Any]) -> Any:
        return getattr(self.contract.functions, method)(*args)

    async def call(self, method: str, *args: Any) -> Any:
        return await self._function(method, args).call()

    async def estimate_gas(self, method: str, args: Sequence[Any], *, sender: str) -> int:
        return int(await self._function(method, args).estimate_gas({"from": sender}))

    async def transact(
        self, method: str, args: Sequence[Any], *, sender: str, gas_limit: int
    ) -> TransactionHandle:
        tx = await self._function(method, args).build_transaction({"from": sender, "gas": gas_limit})
        tx_hash = await self._wallet.request("eth_sendTransaction", [tx])
        logger.debug("Wallet accepted %s transaction %s", method, tx_hash)
        return Web3TransactionHandle(self._web3, str(tx_hash), self._receipt_timeout)

    async def get_balance(self, address: str) -> int:
        return int(await self._web3.eth.get_balance(Web3.to_checksum_address(address)))


class Web3GatewayFactory:
    """Build a contract gateway for whichever chain the wallet is on."""

    def __init__(self, wallet: WalletProvider, config: ConsoleConfig) -> None:
        self._wallet = wallet
        self._config = config
        self._web3: dict[int, AsyncWeb3] = {}

    def __call__(self, chain_id: int) -> ContractGateway:
        if isinstance(self._wallet, LocalAccountProvider):
            web3 = self._wallet.web3(chain_id)
        else:
            if chain_id not in self._web3:
                self._web3[chain_id] = build_async_web3(
                    self._config.rpc_url(chain_id), self._config.request_timeout
                )
            web3 = self._web3[chain_id]

        return Web3ContractGateway(
            self._wallet,
            web3,
            chain_id,
            self._config.contract_address(chain_id),
            receipt_timeout=self._config.receipt_timeout,
        )
