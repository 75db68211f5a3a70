"""
Nonce allocation for a single sending account.
"""

import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class NonceManager:
    """
    Async-safe nonce allocator with the pending nonce as source of truth.

    Concurrent order calls sharing one account go through ``next_nonce``,
    which is serialised by a lock. The allocator never hands out a nonce
    below the node's pending transaction count.
    """

    def __init__(self, web3: Any, address: str):
        self.w3 = web3
        self.address = address
        self._lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None

    async def next_nonce(self) -> int:
        async with self._lock:
            chain_nonce = await self.w3.eth.get_transaction_count(self.address, 'pending')
            if self._next_nonce is None or self._next_nonce < chain_nonce:
                self._next_nonce = chain_nonce
            out = self._next_nonce
            self._next_nonce += 1
            return out

    async def reset_from_chain(self) -> None:
        async with self._lock:
            self._next_nonce = await self.w3.eth.get_transaction_count(self.address, 'pending')
            logger.debug(f"Nonce for {self.address} reset to {self._next_nonce}")
