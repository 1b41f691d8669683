"""ABI fragments for the token contract administered by the console."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..classifier import REVERT_REASONS

WHITELIST_MINT_STATUS_FIELDS = (
    "isOpen",
    "isWhitelisted",
    "priceWei",
    "nextTokenId",
    "endTokenId",
    "remaining",
    "epoch",
    "userMintedWhitelist",
    "userRemainingWhitelist",
)
PUBLIC_MINT_STATUS_FIELDS = (
    "isOpen",
    "priceWei",
    "nextTokenId",
    "endTokenId",
    "remaining",
    "epoch",
    "userMintedPublic",
    "userRemainingPublic",
)
USER_MINT_INFO_FIELDS = (
    "epoch",
    "whitelistMintedThisEpoch",
    "publicMintedThisEpoch",
    "totalMintedThisEpoch",
    "whitelistRemainingThisEpoch",
    "publicRemainingThisEpoch",
    "maxPossibleMintThisEpoch",
)


def _params(types: Sequence[str | tuple[str, str]]) -> list[dict[str, str]]:
    params = []
    for entry in types:
        name, type_ = entry if isinstance(entry, tuple) else ("", entry)
        params.append({"name": name, "type": type_, "internalType": type_})
    return params


def _function(
    name: str,
    inputs: Sequence[str | tuple[str, str]] = (),
    outputs: Sequence[str | tuple[str, str]] = (),
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": _params(inputs),
        "outputs": _params(outputs),
        "stateMutability": mutability,
    }


def _uint_outputs(fields: Sequence[str], bools: Sequence[str] = ()) -> list[tuple[str, str]]:
    return [(field, "bool" if field in bools else "uint256") for field in fields]


_READS = [
    _function("name", outputs=["string"]),
    _function("symbol", outputs=["string"]),
    _function("totalSupply", outputs=["uint256"]),
    _function("totalMinted", outputs=["uint256"]),
    _function("maxSupply", outputs=["uint256"]),
    _function("maxMintAmount", outputs=["uint256"]),
    _function("maxWhitelistBatchSize", outputs=["uint256"]),
    _function("maxOperatorMintAmount", outputs=["uint256"]),
    _function("paused", outputs=["bool"]),
    _function("whitelistStart", outputs=["bool"]),
    _function("publicStart", outputs=["bool"]),
    _function("whitelistCost", outputs=["uint256"]),
    _function("publicCost", outputs=["uint256"]),
    _function("saleEndTokenId", outputs=["uint256"]),
    _function("withdrawalAddress", outputs=["address"]),
    _function("currentEpoch", outputs=["uint256"]),
    _function("OPERATOR_ROLE", outputs=["bytes32"]),
    _function("DEFAULT_ADMIN_ROLE", outputs=["bytes32"]),
    _function("balanceOf", [("owner", "address")], ["uint256"]),
    _function("whitelist", [("account", "address")], ["bool"]),
    _function("tokenURI", [("tokenId", "uint256")], ["string"]),
    _function("hasRole", [("role", "bytes32"), ("account", "address")], ["bool"]),
    _function(
        "whitelistMintStatus",
        [("account", "address")],
        _uint_outputs(WHITELIST_MINT_STATUS_FIELDS, bools=("isOpen", "isWhitelisted")),
    ),
    _function(
        "publicMintStatus",
        [("account", "address")],
        _uint_outputs(PUBLIC_MINT_STATUS_FIELDS, bools=("isOpen",)),
    ),
    _function("getUserMintInfo", [("account", "address")], _uint_outputs(USER_MINT_INFO_FIELDS)),
]

_WRITES = [
    _function("safeMint", [("to", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _function("addWhitelist", [("accounts", "address[]")], mutability="nonpayable"),
    _function("removeWhitelist", [("accounts", "address[]")], mutability="nonpayable"),
    _function("setWhitelist", [("account", "address"), ("status", "bool")], mutability="nonpayable"),
    _function("startNewRound", mutability="nonpayable"),
    _function(
        "setSaleConfig",
        [
            ("whitelistCost", "uint256"),
            ("publicCost", "uint256"),
            ("saleEndTokenId", "uint256"),
            ("whitelistStart", "bool"),
            ("publicStart", "bool"),
        ],
        mutability="nonpayable",
    ),
    _function("setWhitelistStart", [("open", "bool")], mutability="nonpayable"),
    _function("setPublicStart", [("open", "bool")], mutability="nonpayable"),
    _function("setMaxSupply", [("value", "uint256")], mutability="nonpayable"),
    _function("setMaxWhitelistMintPerTx", [("value", "uint256")], mutability="nonpayable"),
    _function("setMaxPublicMintPerTx", [("value", "uint256")], mutability="nonpayable"),
    _function("setMaxWhitelistBatchSize", [("value", "uint256")], mutability="nonpayable"),
    _function("setMaxOperatorMintAmount", [("value", "uint256")], mutability="nonpayable"),
    _function("setBaseURI", [("uri", "string")], mutability="nonpayable"),
    _function("pause", [("paused", "bool")], mutability="nonpayable"),
    _function(
        "setDefaultRoyalty",
        [("receiver", "address"), ("feeNumerator", "uint96")],
        mutability="nonpayable",
    ),
    _function("setWithdrawalAddress", [("account", "address")], mutability="nonpayable"),
    _function("withdraw", mutability="nonpayable"),
    _function("grantRole", [("role", "bytes32"), ("account", "address")], mutability="nonpayable"),
    _function("revokeRole", [("role", "bytes32"), ("account", "address")], mutability="nonpayable"),
]

_ERRORS = [{"type": "error", "name": name, "inputs": []} for name, _ in REVERT_REASONS]

MintConsoleToken_abi: list[dict[str, Any]] = _READS + _WRITES + _ERRORS
