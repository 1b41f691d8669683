"""Constants and the supported network registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Gas limit = estimate * margin / 100, rounded up
ORDINARY_GAS_MARGIN = 120
ROUND_ADVANCE_GAS_MARGIN = 130

MAX_BATCH_SIZE = 100
MIN_BATCH_SLOTS = 1
MAX_BATCH_SLOTS = 100
PREVIEW_INVALID_LIMIT = 10

NATIVE_DECIMALS = 18


@dataclass(frozen=True)
class NetworkProfile:
    """Static metadata for a supported chain."""

    chain_id: int
    name: str
    display_name: str
    is_testnet: bool
    explorer_base_url: str
    native_symbol: str
    rpc_endpoints: tuple[str, ...]

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    @property
    def chain_add_payload(self) -> dict[str, Any]:
        """Parameters for a ``wallet_addEthereumChain`` request."""

        return {
            "chainId": self.chain_id_hex,
            "chainName": self.display_name,
            "nativeCurrency": {
                "name": self.native_symbol,
                "symbol": self.native_symbol,
                "decimals": NATIVE_DECIMALS,
            },
            "rpcUrls": list(self.rpc_endpoints),
            "blockExplorerUrls": [self.explorer_base_url],
        }

    def label(self) -> str:
        return f"{self.display_name} (testnet)" if self.is_testnet else self.display_name

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_base_url}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_base_url}/address/{address}"

    def token_url(self, contract_address: str, token_id: int | None = None) -> str:
        if token_id is None:
            return f"{self.explorer_base_url}/token/{contract_address}"
        return f"{self.explorer_base_url}/token/{contract_address}?a={token_id}"

    def holders_url(self, contract_address: str) -> str:
        return f"{self.explorer_base_url}/token/{contract_address}#balances"


MAINNET_CHAIN_ID = 1
SEPOLIA_CHAIN_ID = 11155111
DEFAULT_CHAIN_ID = MAINNET_CHAIN_ID

NETWORKS: dict[int, NetworkProfile] = {
    MAINNET_CHAIN_ID: NetworkProfile(
        chain_id=MAINNET_CHAIN_ID,
        name="ethereum",
        display_name="Ethereum Mainnet",
        is_testnet=False,
        explorer_base_url="https://etherscan.io",
        native_symbol="ETH",
        rpc_endpoints=("https://eth.llamarpc.com",),
    ),
    SEPOLIA_CHAIN_ID: NetworkProfile(
        chain_id=SEPOLIA_CHAIN_ID,
        name="sepolia",
        display_name="Sepolia",
        is_testnet=True,
        explorer_base_url="https://sepolia.etherscan.io",
        native_symbol="ETH",
        rpc_endpoints=("https://rpc.sepolia.org/",),
    ),
}


def is_supported_chain(chain_id: Any) -> bool:
    """Return True when ``chain_id`` is an integer listed in the registry."""

    return isinstance(chain_id, int) and not isinstance(chain_id, bool) and chain_id in NETWORKS


def get_network_profile(chain_id: int | None) -> NetworkProfile:
    """Get the profile for a chain id, falling back to the default chain.

    Args:
        chain_id: Chain id to look up (unknown or ``None`` ids fall back)

    Returns:
        The matching NetworkProfile
    """
    if chain_id is not None and is_supported_chain(chain_id):
        return NETWORKS[chain_id]
    return NETWORKS[DEFAULT_CHAIN_ID]


def supported_chain_ids() -> list[int]:
    return list(NETWORKS.keys())


def parse_chain_id(value: Any) -> int | None:
    """Normalise a chain id given as int, decimal string or 0x-prefixed hex."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        try:
            return int(text, 16) if text.startswith("0x") else int(text)
        except ValueError:
            return None
    return None
