"""Mint Console - operator console for a token-issuance contract.

This library connects a privileged wallet to the token contract, reads its
configuration and submits privileged calls through a single-flight pipeline
that validates, estimates gas, submits, awaits and reconciles.
"""

from .allowlist import (
    AllowListBatch,
    AllowListSlots,
    AllowListText,
    BatchPreview,
    build_batch,
    capacity_check,
    collect_entries,
    dedupe,
    preview_batch,
    validate_entries,
)
from .base import ContractGateway, Presenter, TransactionHandle, WalletProvider
from .classifier import classify_error
from .constants import NETWORKS, NetworkProfile, get_network_profile, is_supported_chain
from .events import NotificationChannel
from .evm import ConsoleConfig, ConnectionManager, MintConsole, PipelineGuard, TransactionPipeline
from .exceptions import (
    BusyError,
    CapacityExceededError,
    ContractNotFoundError,
    ContractRevertError,
    EmptyBatchError,
    GasEstimationFailedError,
    InsufficientFundsError,
    MalformedInputError,
    NetworkMismatchError,
    NoAccountsError,
    NonceOrPricingError,
    NotConnectedError,
    NoWalletProviderError,
    OperationError,
    ProviderRpcError,
    RequestTimeoutError,
    UnknownError,
    UnsupportedChainError,
    UserRejectedError,
    ValidationFailedError,
)
from .types import (
    BatchMode,
    ConnectionState,
    ContractSnapshot,
    ErrorKind,
    LimitKind,
    Notification,
    OperationKind,
    OperationResult,
    OperationStatus,
    Role,
    SaleKind,
    Topic,
    WalletSummary,
)
from .utils import apply_gas_margin, format_ether, is_valid_address, is_valid_integer, is_valid_uri

__version__ = "0.1.0"

__all__ = [
    # Facade and components
    "MintConsole",
    "ConsoleConfig",
    "ConnectionManager",
    "TransactionPipeline",
    "PipelineGuard",
    "NotificationChannel",
    # Capabilities
    "WalletProvider",
    "ContractGateway",
    "TransactionHandle",
    "Presenter",
    # Networks
    "NETWORKS",
    "NetworkProfile",
    "get_network_profile",
    "is_supported_chain",
    # Types and enums
    "BatchMode",
    "ConnectionState",
    "ContractSnapshot",
    "ErrorKind",
    "LimitKind",
    "Notification",
    "OperationKind",
    "OperationResult",
    "OperationStatus",
    "Role",
    "SaleKind",
    "Topic",
    "WalletSummary",
    # Allow-list processing
    "AllowListBatch",
    "AllowListSlots",
    "AllowListText",
    "BatchPreview",
    "build_batch",
    "capacity_check",
    "collect_entries",
    "dedupe",
    "preview_batch",
    "validate_entries",
    # Errors
    "classify_error",
    "OperationError",
    "NotConnectedError",
    "NoWalletProviderError",
    "NoAccountsError",
    "UnsupportedChainError",
    "BusyError",
    "ValidationFailedError",
    "CapacityExceededError",
    "EmptyBatchError",
    "UserRejectedError",
    "RequestTimeoutError",
    "ContractNotFoundError",
    "ContractRevertError",
    "InsufficientFundsError",
    "NonceOrPricingError",
    "GasEstimationFailedError",
    "MalformedInputError",
    "NetworkMismatchError",
    "UnknownError",
    "ProviderRpcError",
    # Utility functions
    "apply_gas_margin",
    "format_ether",
    "is_valid_address",
    "is_valid_integer",
    "is_valid_uri",
]
