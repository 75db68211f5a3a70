"""
Chain access package.

This package provides everything that touches the node: call and event
encoding, the receipt model, collaborator interfaces, the web3-backed
client, nonce management and the exception hierarchy.
"""

from .exceptions import (
    TradingClientError,
    InvalidPriceError,
    InvalidOrderError,
    AuthorizationError,
    SubmissionFailedError,
    SubmissionTimeoutError,
    ResultNotFoundError,
    StaleBookError,
    RpcError,
)
from .receipt import LogEntry, TxReceipt
from .abi import ContractCall, MAX_UINT128, MAX_UINT256, ZERO_ADDRESS
from .interfaces import (
    ChainReader,
    TransactionSigner,
    BookProvider,
    UserRouterResolver,
    MarketDiscovery,
)
from .nonce import NonceManager
from .client import ChainClientConfig, Web3ChainClient

__all__ = [
    # Exceptions
    'TradingClientError',
    'InvalidPriceError',
    'InvalidOrderError',
    'AuthorizationError',
    'SubmissionFailedError',
    'SubmissionTimeoutError',
    'ResultNotFoundError',
    'StaleBookError',
    'RpcError',

    # Receipts and calls
    'LogEntry',
    'TxReceipt',
    'ContractCall',
    'MAX_UINT128',
    'MAX_UINT256',
    'ZERO_ADDRESS',

    # Interfaces
    'ChainReader',
    'TransactionSigner',
    'BookProvider',
    'UserRouterResolver',
    'MarketDiscovery',

    # Client
    'NonceManager',
    'ChainClientConfig',
    'Web3ChainClient',
]
