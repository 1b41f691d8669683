"""Configuration container for the mint console."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from web3 import Web3

from ..constants import DEFAULT_CHAIN_ID, ZERO_ADDRESS, get_network_profile, parse_chain_id
from ..exceptions import MalformedInputError
from ..utils import is_valid_address

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
ENV_PREFIX = "MINT_CONSOLE_"


@dataclass(frozen=True)
class ConsoleConfig:
    """Per-chain contract addresses, RPC overrides and timeouts."""

    contract_addresses: Mapping[int, str] = field(default_factory=dict)
    rpc_urls: Mapping[int, str] = field(default_factory=dict)
    default_chain_id: int = DEFAULT_CHAIN_ID
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT

    def contract_address(self, chain_id: int) -> str | None:
        """Return the checksummed contract address for ``chain_id`` or None if unset."""

        address = self.contract_addresses.get(chain_id)
        if not address or address.lower() == ZERO_ADDRESS:
            return None
        return Web3.to_checksum_address(address)

    def rpc_url(self, chain_id: int) -> str:
        """Return the configured RPC for ``chain_id``, else the registry's first endpoint."""

        override = self.rpc_urls.get(chain_id)
        if override:
            return override.rstrip("/")
        return get_network_profile(chain_id).rpc_endpoints[0]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ConsoleConfig:
        """Build a config from ``MINT_CONSOLE_*`` environment variables."""

        env = os.environ if environ is None else environ
        contracts: dict[int, str] = {}
        rpcs: dict[int, str] = {}

        for key, value in env.items():
            if not key.startswith(ENV_PREFIX) or not value:
                continue
            name = key[len(ENV_PREFIX) :]
            if name.startswith("CONTRACT_"):
                chain_id = _chain_suffix(key, name[len("CONTRACT_") :])
                if not is_valid_address(value.strip()):
                    raise MalformedInputError(
                        f"{key} is not a valid address", details={"value": value}
                    )
                contracts[chain_id] = value.strip()
            elif name.startswith("RPC_"):
                rpcs[_chain_suffix(key, name[len("RPC_") :])] = value.strip()

        default_chain = env.get(f"{ENV_PREFIX}DEFAULT_CHAIN")
        return cls(
            contract_addresses=contracts,
            rpc_urls=rpcs,
            default_chain_id=_chain_suffix(f"{ENV_PREFIX}DEFAULT_CHAIN", default_chain)
            if default_chain
            else DEFAULT_CHAIN_ID,
            request_timeout=_float_env(env, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            receipt_timeout=_float_env(env, "RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
        )


def _chain_suffix(key: str, raw: str) -> int:
    chain_id = parse_chain_id(raw)
    if chain_id is None:
        raise MalformedInputError(f"{key} does not name a chain id", details={"value": raw})
    return chain_id


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise MalformedInputError(
            f"{ENV_PREFIX}{name} must be a number of seconds", details={"value": raw}
        ) from exc
