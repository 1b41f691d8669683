"""Type definitions and data models for the mint console."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any

from eth_typing import ChecksumAddress

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .base import ContractGateway
    from .exceptions import OperationError


class ErrorKind(str, Enum):
    """Stable failure taxonomy shown to the operator."""

    NOT_CONNECTED = "NotConnected"
    NO_WALLET_PROVIDER = "NoWalletProvider"
    NO_ACCOUNTS = "NoAccounts"
    UNSUPPORTED_CHAIN = "UnsupportedChain"
    BUSY = "Busy"
    VALIDATION_FAILED = "ValidationFailed"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    EMPTY_BATCH = "EmptyBatch"
    USER_REJECTED = "UserRejected"
    TIMEOUT = "Timeout"
    CONTRACT_NOT_FOUND = "ContractNotFound"
    CONTRACT_REVERT = "ContractRevert"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    NONCE_OR_PRICING = "NonceOrPricing"
    GAS_ESTIMATION_FAILED = "GasEstimationFailed"
    MALFORMED_INPUT = "MalformedInput"
    NETWORK_MISMATCH = "NetworkMismatch"
    UNKNOWN = "Unknown"


class OperationKind(str, Enum):
    """Privileged operations that run through the transaction pipeline."""

    OWNER_MINT = "owner_mint"
    ADD_ALLOWLIST = "add_allowlist"
    REMOVE_ALLOWLIST = "remove_allowlist"
    SET_ALLOWLIST_ENTRY = "set_allowlist_entry"
    START_NEW_ROUND = "start_new_round"
    SET_SALE_CONFIG = "set_sale_config"
    SET_SALE_FLAG = "set_sale_flag"
    SET_LIMIT = "set_limit"
    SET_BASE_URI = "set_base_uri"
    SET_PAUSED = "set_paused"
    SET_ROYALTY = "set_royalty"
    SET_WITHDRAWAL_ADDRESS = "set_withdrawal_address"
    WITHDRAW = "withdraw"
    GRANT_ROLE = "grant_role"
    REVOKE_ROLE = "revoke_role"


class BatchMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MessageLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Topic(str, Enum):
    """Notification topics consumed by the presentation layer."""

    CONNECTION = "connection"
    NETWORK = "network"
    BUSY = "busy"
    MESSAGE = "message"
    SNAPSHOT = "snapshot"
    WALLET = "wallet"
    CLEAR_INPUTS = "clear_inputs"


class Role(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    NONE = "none"


class SaleKind(str, Enum):
    ALLOWLIST = "allowlist"
    PUBLIC = "public"


class LimitKind(str, Enum):
    MAX_SUPPLY = "max_supply"
    MAX_ALLOWLIST_MINT_PER_TX = "max_allowlist_mint_per_tx"
    MAX_PUBLIC_MINT_PER_TX = "max_public_mint_per_tx"
    MAX_ALLOWLIST_BATCH_SIZE = "max_allowlist_batch_size"
    MAX_OPERATOR_MINT_AMOUNT = "max_operator_mint_amount"


class OperationStatus(IntEnum):
    """Terminal outcome of a pipeline run."""

    SUCCEEDED = 0
    REJECTED = 1  # guard or pre-flight failure, nothing was sent
    CANCELLED = 2  # operator declined the confirmation prompt
    FAILED = 3  # estimation or submission failed, nothing was sent
    UNCONFIRMED = 4  # sent, but awaiting the receipt errored
    REVERTED = 5  # sent and mined with a failed status


@dataclass(frozen=True)
class SignerHandle:
    """Account that signs privileged calls on a specific chain."""

    address: ChecksumAddress
    chain_id: int | None


@dataclass
class ConnectionState:
    """Wallet/chain identity owned by the connection manager."""

    wallet_address: ChecksumAddress | None = None
    chain_id: int | None = None
    provider: ContractGateway | None = None
    signer: SignerHandle | None = None
    is_connected: bool = False

    def clear(self) -> None:
        self.wallet_address = None
        self.chain_id = None
        self.provider = None
        self.signer = None
        self.is_connected = False


@dataclass(frozen=True)
class PendingOperation:
    kind: OperationKind
    started_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SubmittedTransaction:
    hash: str
    gas_estimate: int
    gas_limit_sent: int
    submitted_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ContractSnapshot:
    """Read-only projection of the token contract's configuration."""

    chain_id: int
    contract_address: str | None
    configured: bool = True
    reason: str | None = None
    name: str | None = None
    symbol: str | None = None
    total_supply: int | None = None
    total_minted: int | None = None
    max_supply: int | None = None
    max_mint_amount: int | None = None
    max_allowlist_batch_size: int | None = None
    max_operator_mint_amount: int | None = None
    paused: bool | None = None
    allowlist_sale_open: bool | None = None
    public_sale_open: bool | None = None
    allowlist_price_wei: int | None = None
    public_price_wei: int | None = None
    sale_end_token_id: int | None = None
    withdrawal_address: str | None = None
    balance_wei: int | None = None
    refreshed_at: float = field(default_factory=time.time)

    @classmethod
    def unconfigured(cls, chain_id: int, reason: str) -> "ContractSnapshot":
        return cls(chain_id=chain_id, contract_address=None, configured=False, reason=reason)


@dataclass(frozen=True)
class WalletSummary:
    """Connected account details; any field may be unavailable."""

    address: ChecksumAddress
    native_balance_wei: int | None = None
    token_balance: int | None = None
    role: Role | None = None


@dataclass(frozen=True)
class Notification:
    topic: Topic
    message: str = ""
    level: MessageLevel | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult:
    """Outcome of a privileged operation, returned instead of raising."""

    kind: OperationKind
    status: OperationStatus
    message: str = ""
    error: OperationError | None = None
    transaction: SubmittedTransaction | None = None
    explorer_url: str | None = None
    cleared_fields: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.status == OperationStatus.SUCCEEDED

    @property
    def submitted(self) -> bool:
        return self.transaction is not None


@dataclass(frozen=True)
class AllowListMintStatus:
    is_open: bool
    is_allowlisted: bool
    price_wei: int
    next_token_id: int
    end_token_id: int
    remaining: int
    epoch: int
    user_minted: int
    user_remaining: int


@dataclass(frozen=True)
class PublicMintStatus:
    is_open: bool
    price_wei: int
    next_token_id: int
    end_token_id: int
    remaining: int
    epoch: int
    user_minted: int
    user_remaining: int


@dataclass(frozen=True)
class UserMintInfo:
    epoch: int
    allowlist_minted: int
    public_minted: int
    total_minted: int
    allowlist_remaining: int
    public_remaining: int
    max_possible: int


@dataclass(frozen=True)
class RoundInfo:
    epoch: int
    label: str

    @property
    def started(self) -> bool:
        return self.epoch > 0
