from core.errors import (
    ChainError,
    InsufficientBalanceError,
    InvalidParameterError,
    NetworkStatusError,
    OversizedEstimateError,
    ParseError,
    RPCError,
)

from .client import ChainClient
from .network_status import NetworkStatusMonitor, ObservableStore
from .provider import ChainConfigProvider, RpcChainConfig, StaticChainConfig
from .tx_utils import (
    TxUtils,
    add_gas_buffer,
    build_transaction,
    exceeds_block_limit,
    max_transaction_cost,
    sufficient_balance,
)

__all__ = [
    "ChainClient",
    "ChainConfigProvider",
    "StaticChainConfig",
    "RpcChainConfig",
    "NetworkStatusMonitor",
    "ObservableStore",
    "TxUtils",
    "add_gas_buffer",
    "build_transaction",
    "exceeds_block_limit",
    "max_transaction_cost",
    "sufficient_balance",
    "ChainError",
    "ParseError",
    "InvalidParameterError",
    "InsufficientBalanceError",
    "OversizedEstimateError",
    "RPCError",
    "NetworkStatusError",
]
