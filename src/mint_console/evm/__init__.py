"""web3.py backed components of the mint console."""

from .client import MintConsole
from .config import ConsoleConfig
from .connections import ConnectionManager
from .providers import LocalAccountProvider, Web3ContractGateway, Web3GatewayFactory
from .transactions import PipelineGuard, TransactionPipeline

__all__ = [
    "ConnectionManager",
    "ConsoleConfig",
    "LocalAccountProvider",
    "MintConsole",
    "PipelineGuard",
    "TransactionPipeline",
    "Web3ContractGateway",
    "Web3GatewayFactory",
]
