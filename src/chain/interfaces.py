"""
Collaborator interfaces consumed by the execution engine.

The engine never talks to a node directly; it goes through these narrow
interfaces so that every stage can be driven by a fake in tests. The
web3-backed implementation lives in ``chain.client``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .abi import ContractCall


class ChainReader(ABC):
    """Batched read access (balances, allowances, view functions)."""

    @abstractmethod
    async def multicall_read(self, calls: Sequence[ContractCall]) -> List[Any]:
        """
        Execute read calls in one round trip.

        Args:
            calls: Calls carrying their output types.

        Returns:
            Decoded values, one per call, in order.
        """


class TransactionSigner(ABC):
    """
    Prepare, sign and submit transactions.

    Implementations must serialise nonce assignment per account; the engine
    holds no locks of its own.
    """

    @abstractmethod
    async def prepare(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Fill nonce, gas, fees and chain id into a transaction request."""

    @abstractmethod
    async def sign(self, prepared: Dict[str, Any]) -> bytes:
        """Return the signed, serialized transaction."""

    @abstractmethod
    async def submit_realtime(self, signed: bytes) -> Dict[str, Any]:
        """
        Send a signed transaction through the low-latency channel.

        Returns:
            The raw receipt object, once the outcome is known.
        """


class BookProvider(ABC):
    """Book and configuration snapshots for a market."""

    @abstractmethod
    async def get_book(self, market: Any, depth: int = 1) -> Any:
        """Return a ``BookSnapshot`` for ``market``."""


class UserRouterResolver(ABC):
    """Resolves the routing contract that holds a user's limit-order funds."""

    @abstractmethod
    async def get_user_router(self, user: str) -> str:
        """Return the router address for ``user``."""


class MarketDiscovery(ABC):
    """Lists tradable markets."""

    @abstractmethod
    async def list_open_markets(self, filter: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Return the open ``Market`` objects matching ``filter``."""
