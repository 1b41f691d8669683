"""Exception hierarchy for the mint console."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .types import ErrorKind

METAMASK_INSTALL_LINKS = {
    "desktop": "https://metamask.io/download/",
    "ios": "https://apps.apple.com/app/metamask/id1438144202",
    "android": "https://play.google.com/store/apps/details?id=io.metamask",
}


class OperationError(Exception):
    """Base exception for every failure surfaced to the operator."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotConnectedError(OperationError):
    """Raised when a privileged action runs without a connected wallet."""

    kind = ErrorKind.NOT_CONNECTED

    def __init__(self, message: str = "Connect a wallet first", details: dict | None = None):
        super().__init__(message, details)


class NoWalletProviderError(OperationError):
    """Raised when no wallet provider is available to connect through."""

    kind = ErrorKind.NO_WALLET_PROVIDER

    def __init__(
        self,
        message: str = "No wallet provider detected; install or open a wallet app",
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.install_links = dict(METAMASK_INSTALL_LINKS)


class NoAccountsError(OperationError):
    kind = ErrorKind.NO_ACCOUNTS

    def __init__(
        self, message: str = "The wallet did not expose any account", details: dict | None = None
    ):
        super().__init__(message, details)


class UnsupportedChainError(OperationError):
    """Raised when a chain id is missing from the network registry."""

    kind = ErrorKind.UNSUPPORTED_CHAIN

    def __init__(self, chain_id: int | None, message: str | None = None, details: dict | None = None):
        super().__init__(message or f"Unsupported network (chain id {chain_id})", details)
        self.chain_id = chain_id


class BusyError(OperationError):
    """Raised when a privileged action starts while another one is pending."""

    kind = ErrorKind.BUSY

    def __init__(self, active: Any = None, details: dict | None = None):
        super().__init__("Another transaction is still being processed", details)
        self.active = active


class ValidationFailedError(OperationError):
    """Raised when operator input violates an operation's constraints."""

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, violations: Sequence[str], details: dict | None = None):
        self.violations = list(violations)
        super().__init__("Invalid input:\n" + "\n".join(self.violations), details)


class CapacityExceededError(OperationError):
    kind = ErrorKind.CAPACITY_EXCEEDED

    def __init__(self, count: int, limit: int, details: dict | None = None):
        super().__init__(
            f"At most {limit} addresses can be submitted at once (got {count})", details
        )
        self.count = count
        self.limit = limit


class EmptyBatchError(OperationError):
    kind = ErrorKind.EMPTY_BATCH

    def __init__(self, message: str = "The address list is empty", details: dict | None = None):
        super().__init__(message, details)


class UserRejectedError(OperationError):
    kind = ErrorKind.USER_REJECTED


class RequestTimeoutError(OperationError):
    kind = ErrorKind.TIMEOUT


class ContractNotFoundError(OperationError):
    kind = ErrorKind.CONTRACT_NOT_FOUND


class ContractRevertError(OperationError):
    """Raised when the contract rejected the call."""

    kind = ErrorKind.CONTRACT_REVERT

    def __init__(self, message: str, reason: str | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.reason = reason


class InsufficientFundsError(OperationError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class NonceOrPricingError(OperationError):
    kind = ErrorKind.NONCE_OR_PRICING


class GasEstimationFailedError(OperationError):
    kind = ErrorKind.GAS_ESTIMATION_FAILED


class MalformedInputError(OperationError):
    kind = ErrorKind.MALFORMED_INPUT


class NetworkMismatchError(OperationError):
    kind = ErrorKind.NETWORK_MISMATCH


class UnknownError(OperationError):
    kind = ErrorKind.UNKNOWN


class ProviderRpcError(Exception):
    """Raw error reported by a wallet provider (EIP-1193 style)."""

    USER_REJECTED = 4001
    UNRECOGNIZED_CHAIN = 4902

    def __init__(self, code: int | str | None, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data
