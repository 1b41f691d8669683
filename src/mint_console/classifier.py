"""Translate raw provider, transport and contract failures into OperationErrors.

Classification is an ordered table of rules evaluated top-down over a
normalised :class:`RawFailure`; the first matching rule builds the error.
``classify_error`` never raises.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from eth_abi import decode as abi_decode
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, InvalidAddress, TimeExhausted

from .exceptions import (
    ContractNotFoundError,
    ContractRevertError,
    GasEstimationFailedError,
    InsufficientFundsError,
    MalformedInputError,
    NetworkMismatchError,
    NonceOrPricingError,
    OperationError,
    ProviderRpcError,
    RequestTimeoutError,
    UnknownError,
    UserRejectedError,
)

logger = logging.getLogger(__name__)

ERROR_STRING_SELECTOR = "0x08c379a0"
GENERIC_UNKNOWN_MESSAGE = "An unknown error occurred"
GENERIC_REVERT_MESSAGE = "The contract call failed; check the inputs and the wallet's permissions"

# Named contract-level failures and their explanations, matched by name or selector.
REVERT_REASONS: tuple[tuple[str, str], ...] = (
    ("InvalidAdmin", "Invalid admin address."),
    ("InvalidRoyaltyReceiver", "Invalid royalty receiver address."),
    ("InvalidWithdrawalAddress", "Invalid withdrawal address."),
    ("InvalidRoyalty", "Royalty cannot exceed 10%."),
    ("UriEmpty", "The URI is empty."),
    ("MintPaused", "Minting is paused."),
    ("InvalidRecipient", "Invalid recipient address."),
    ("MintAmountZero", "Mint amount must be greater than zero."),
    ("MintAmountExceedsLimit", "Mint amount exceeds the allowed limit."),
    ("SaleCapNotConfigured", "The sale cap has not been configured."),
    ("SaleRangeExceeded", "The current sale range has been exceeded."),
    ("MaxSupplyExceeded", "Max supply exceeded."),
    ("WhitelistMintNotStarted", "The allow-list sale has not started."),
    ("PublicMintNotStarted", "The public sale has not started."),
    ("NotWhitelisted", "The caller is not on the allow-list."),
    ("IncorrectETHAmount", "Incorrect payment amount."),
    ("EmptyList", "The list is empty."),
    ("TooManyAccounts", "Too many accounts (at most 100)."),
    ("ZeroAddress", "The address is the zero address."),
    ("EndTokenIdInvalid", "The end token id is invalid."),
    ("EndTokenIdExceedsMaxSupply", "The end token id exceeds max supply."),
    ("CannotDecreaseEndTokenId", "The end token id cannot be decreased."),
    ("CannotDecreaseBelowMinted", "Cannot decrease below the number already minted."),
    ("CannotDecreaseBelowSaleCap", "Cannot decrease below the sale cap."),
    ("TransfersPaused", "Transfers are paused."),
    ("WithdrawalAddressNotSet", "The withdrawal address is not set."),
    ("NoBalance", "The contract has no balance."),
    ("WithdrawalFailed", "The withdrawal failed."),
)

_TIMEOUT_RE = re.compile(
    r"timeout|timed out|could not detect network|missing response|failed to fetch|"
    r"network request failed|is not in the chain after",
    re.IGNORECASE,
)
_CONTRACT_NOT_FOUND_RE = re.compile(
    r"Returned values aren't valid|did it run Out of Gas|not using the correct ABI|"
    r"requesting data from a block number that does not exist|node which is not fully synced|"
    r"could not decode contract function call",
    re.IGNORECASE,
)
_REVERT_RE = re.compile(r"execution reverted|call exception|contract call failed", re.IGNORECASE)
_REASON_STRING_RE = re.compile(r"reverted with reason string ['\"]([^'\"]+)['\"]", re.IGNORECASE)
_EXECUTION_REVERTED_RE = re.compile(r"execution reverted:\s*(.+)", re.IGNORECASE)
_HEX_RE = re.compile(r"0x[0-9a-fA-F]*")
_USER_REJECTED_RE = re.compile(r"user rejected|user denied", re.IGNORECASE)
_INSUFFICIENT_FUNDS_RE = re.compile(r"insufficient funds", re.IGNORECASE)
_NONCE_RE = re.compile(r"nonce too low", re.IGNORECASE)
_REPLACEMENT_RE = re.compile(r"replacement (fee|underpriced)|replacement transaction underpriced", re.IGNORECASE)
_GAS_ESTIMATION_RE = re.compile(r"gas required exceeds allowance|always failing transaction", re.IGNORECASE)
_INVALID_ADDRESS_RE = re.compile(r"invalid address", re.IGNORECASE)
_INVALID_NUMBER_RE = re.compile(r"invalid (bignumber|number|uint)", re.IGNORECASE)
_NETWORK_RE = re.compile(r"network error|chain|wrong network|unsupported chain id", re.IGNORECASE)


@dataclass(frozen=True)
class RawFailure:
    """Normalised view of an arbitrary failure value."""

    code: int | str | None
    message: str
    data: str | None
    is_revert: bool = False
    is_timeout: bool = False
    is_missing_contract: bool = False
    is_invalid_address: bool = False


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    matches: Callable[[RawFailure], bool]
    build: Callable[[RawFailure], OperationError]


def normalize_failure(raw: Any) -> RawFailure:
    """Extract code, message and revert data from exceptions, RPC dicts or strings."""

    code: int | str | None = None
    data: Any = None
    message = ""

    if isinstance(raw, Mapping):
        code = raw.get("code")
        data = raw.get("data")
        message = _first_message(raw.get("data"), raw.get("error"), raw.get("message"))
    elif isinstance(raw, BaseException):
        code = getattr(raw, "code", None)
        data = getattr(raw, "data", None)
        rpc_response = getattr(raw, "rpc_response", None)
        error_payload = getattr(raw, "error", None)
        if isinstance(rpc_response, Mapping):
            error_payload = error_payload or rpc_response.get("error")
        first_arg = raw.args[0] if raw.args else None
        if code is None and isinstance(first_arg, Mapping):
            code = first_arg.get("code")
            data = data if data is not None else first_arg.get("data")
        message = _first_message(
            data,
            error_payload,
            first_arg if isinstance(first_arg, Mapping) else None,
            getattr(raw, "message", None),
        ) or str(raw)
    elif raw is not None:
        message = str(raw)

    if isinstance(data, Mapping):
        data = data.get("data")

    return RawFailure(
        code=code if isinstance(code, int | str) and not isinstance(code, bool) else None,
        message=message or "",
        data=data if isinstance(data, str) and data.startswith("0x") else None,
        is_revert=isinstance(raw, ContractLogicError),
        is_timeout=isinstance(raw, TimeExhausted | TimeoutError),
        is_missing_contract=isinstance(raw, BadFunctionCallOutput),
        is_invalid_address=isinstance(raw, InvalidAddress),
    )


def _first_message(*candidates: Any) -> str:
    for candidate in candidates:
        if isinstance(candidate, Mapping):
            value = candidate.get("message")
            if isinstance(value, str) and value:
                return value
        elif isinstance(candidate, str) and candidate and not _HEX_RE.fullmatch(candidate):
            return candidate
    return ""


@lru_cache(maxsize=1)
def _selector_table() -> dict[str, tuple[str, str]]:
    table = {}
    for name, explanation in REVERT_REASONS:
        selector = "0x" + bytes(Web3.keccak(text=f"{name}()")[:4]).hex()
        table[selector] = (name, explanation)
    return table


def decode_error_string(data: str | None) -> str | None:
    """Decode an ``Error(string)`` revert payload, if that is what ``data`` holds."""

    if not data or not data.lower().startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = abi_decode(["string"], bytes.fromhex(data[10:]))
    except Exception:  # noqa: BLE001 - undecodable payload simply has no reason
        return None
    return str(reason) or None


def extract_revert_reason(failure: RawFailure) -> str | None:
    match = _REASON_STRING_RE.search(failure.message)
    if match:
        return match.group(1)
    return decode_error_string(failure.data)


def match_named_revert(failure: RawFailure) -> tuple[str, str] | None:
    for name, explanation in REVERT_REASONS:
        if re.search(rf"\b{name}\b", failure.message, re.IGNORECASE):
            return name, explanation

    if failure.data and len(failure.data) >= 10:
        return _selector_table().get(failure.data[:10].lower())
    return None


def _build_revert(failure: RawFailure) -> OperationError:
    reason = extract_revert_reason(failure)
    if reason:
        named = match_named_revert(RawFailure(code=None, message=reason, data=None))
        if named is not None:
            return ContractRevertError(f"Contract rejected the call: {named[1]}", reason=named[0])
        return ContractRevertError(f"Contract rejected the call: {reason}", reason=reason)

    named = match_named_revert(failure)
    if named is not None:
        return ContractRevertError(f"Contract rejected the call: {named[1]}", reason=named[0])

    trailing = _EXECUTION_REVERTED_RE.search(failure.message)
    if trailing:
        text = trailing.group(1).strip()
        if text and not _HEX_RE.fullmatch(text):
            return ContractRevertError(f"Contract rejected the call: {text}", reason=text)

    return ContractRevertError(GENERIC_REVERT_MESSAGE)


def _is_user_rejection(failure: RawFailure) -> bool:
    return (
        failure.code in (ProviderRpcError.USER_REJECTED, "ACTION_REJECTED")
        or _USER_REJECTED_RE.search(failure.message) is not None
    )


def _is_nonce_or_pricing(failure: RawFailure) -> bool:
    return bool(_NONCE_RE.search(failure.message) or _REPLACEMENT_RE.search(failure.message))


def _build_nonce_or_pricing(failure: RawFailure) -> OperationError:
    if _NONCE_RE.search(failure.message):
        return NonceOrPricingError("Nonce too low; wait a moment and try again")
    return NonceOrPricingError("Replacement underpriced; raise the gas price or limit and retry")


def _build_malformed(failure: RawFailure) -> OperationError:
    if failure.is_invalid_address or _INVALID_ADDRESS_RE.search(failure.message):
        return MalformedInputError("Invalid address format")
    return MalformedInputError("Invalid number format")


def _build_fallback(failure: RawFailure) -> OperationError:
    if not failure.message.strip():
        return UnknownError(GENERIC_UNKNOWN_MESSAGE)
    return UnknownError(f"Error: {failure.message}")


RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "user_rejected",
        _is_user_rejection,
        lambda f: UserRejectedError("The request was rejected in the wallet"),
    ),
    ClassificationRule(
        "timeout",
        lambda f: f.is_timeout or _TIMEOUT_RE.search(f.message) is not None,
        lambda f: RequestTimeoutError(
            "The RPC node timed out. The transaction may still have been sent; "
            "check the block explorer"
        ),
    ),
    ClassificationRule(
        "contract_not_found",
        lambda f: f.is_missing_contract or _CONTRACT_NOT_FOUND_RE.search(f.message) is not None,
        lambda f: ContractNotFoundError(
            "No contract found on this network; check the selected network and contract address"
        ),
    ),
    ClassificationRule(
        "revert",
        lambda f: f.is_revert or _REVERT_RE.search(f.message) is not None,
        _build_revert,
    ),
    ClassificationRule(
        "insufficient_funds",
        lambda f: f.code == "INSUFFICIENT_FUNDS" or _INSUFFICIENT_FUNDS_RE.search(f.message) is not None,
        lambda f: InsufficientFundsError("The wallet does not hold enough ETH to pay for gas"),
    ),
    ClassificationRule("nonce_or_pricing", _is_nonce_or_pricing, _build_nonce_or_pricing),
    ClassificationRule(
        "gas_estimation",
        lambda f: f.code == "UNPREDICTABLE_GAS_LIMIT" or _GAS_ESTIMATION_RE.search(f.message) is not None,
        lambda f: GasEstimationFailedError(
            "Gas estimation failed; check the inputs, permissions and contract state"
        ),
    ),
    ClassificationRule(
        "malformed_input",
        lambda f: f.is_invalid_address
        or _INVALID_ADDRESS_RE.search(f.message) is not None
        or _INVALID_NUMBER_RE.search(f.message) is not None,
        _build_malformed,
    ),
    ClassificationRule(
        "network",
        lambda f: _NETWORK_RE.search(f.message) is not None,
        lambda f: NetworkMismatchError("Network error; check the selected network"),
    ),
)


def classify_error(raw: Any) -> OperationError:
    """Map any raw failure onto the OperationError taxonomy. Never raises."""

    if isinstance(raw, OperationError):
        return raw

    try:
        failure = normalize_failure(raw)
        for rule in RULES:
            if rule.matches(failure):
                return rule.build(failure)
        return _build_fallback(failure)
    except Exception:  # noqa: BLE001 - classification must be total
        logger.debug("Failed to inspect raw error %r", raw, exc_info=True)
        return UnknownError(GENERIC_UNKNOWN_MESSAGE)
