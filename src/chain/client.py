"""
Web3-backed chain client.

This module provides the concrete collaborator the execution engine uses
against a live node. It includes:
- Batched reads through Multicall3
- Transaction preparation (nonce, gas limit, fees, chain id)
- Local signing with an eth-account key
- Submission through the node's realtime channel
  (``realtime_sendRawTransaction``), which answers with the receipt
- User router resolution through the router proxy factory
- Book configuration snapshots through the reader contract
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception
from web3.providers import AsyncHTTPProvider
from web3.types import RPCEndpoint

from .abi import ContractCall, aggregate3, compute_proxy_address, reader_config_info
from .exceptions import RpcError
from .interfaces import BookProvider, ChainReader, TransactionSigner, UserRouterResolver
from .nonce import NonceManager

logger = logging.getLogger(__name__)

REALTIME_SEND_METHOD = 'realtime_sendRawTransaction'
DEFAULT_MULTICALL_ADDRESS = '0xcA11bde05977b3631167028862bE2a173976CA11'


@dataclass
class ChainClientConfig:
    """Configuration for the chain client."""

    rpc_url: str
    private_key: str
    chain_id: Optional[int] = None

    multicall_address: str = DEFAULT_MULTICALL_ADDRESS
    router_proxy_factory_address: Optional[str] = None
    smart_router_address: Optional[str] = None
    reader_address: Optional[str] = None

    # Seconds, applied to every HTTP request except realtime submission
    request_timeout: float = 10.0
    # Seconds the realtime request may stay open; None leaves it unbounded
    realtime_timeout: Optional[float] = 30.0
    gas_limit_multiplier: float = 1.2


class Web3ChainClient(ChainReader, TransactionSigner, UserRouterResolver, BookProvider):
    """
    AsyncWeb3 client implementing the engine's read, signing, routing and
    book interfaces.

    Realtime submissions go through their own provider whose HTTP timeout
    follows ``realtime_timeout``, so that the submitter's wait bound is the
    one that applies.

    Example:
        ```python
        from config import load_config
        from chain import Web3ChainClient

        config = load_config('config/config.yaml')
        client = Web3ChainClient.from_config(config)

        balances = await client.multicall_read([...])
        await client.close()
        ```
    """

    def __init__(
        self,
        config: ChainClientConfig,
        web3: Optional[AsyncWeb3] = None,
        realtime_provider: Optional[Any] = None
    ):
        """
        Initialize the chain client.

        Args:
            config: Client configuration.
            web3: Pre-built AsyncWeb3 instance. Built from ``rpc_url`` if not provided.
            realtime_provider: Provider for ``realtime_sendRawTransaction``.
                               Defaults to the pre-built instance's provider when
                               ``web3`` is given, otherwise to an HTTP provider
                               bounded by ``realtime_timeout``.
        """
        self.config = config
        self._account = Account.from_key(config.private_key)
        self._w3 = web3 or AsyncWeb3(
            AsyncHTTPProvider(
                config.rpc_url,
                request_kwargs={'timeout': aiohttp.ClientTimeout(total=config.request_timeout)},
            )
        )
        if realtime_provider is None:
            if web3 is not None:
                realtime_provider = web3.provider
            else:
                realtime_provider = AsyncHTTPProvider(
                    config.rpc_url,
                    request_kwargs={'timeout': aiohttp.ClientTimeout(total=self._realtime_http_timeout())},
                )
        self._realtime_provider = realtime_provider
        self._nonce_manager = NonceManager(self._w3, self._account.address)
        self._chain_id: Optional[int] = config.chain_id

        logger.info(f"Chain client initialized for account {self._account.address}")

    @classmethod
    def from_config(cls, config: Any) -> 'Web3ChainClient':
        """
        Create a client from a ``TradingClientConfig``.

        Args:
            config: Configuration object with network, account and contract settings.

        Returns:
            Configured Web3ChainClient instance.
        """
        client_config = ChainClientConfig(
            rpc_url=config.network.rpc_url,
            private_key=config.account.private_key,
            chain_id=config.network.chain_id,
            multicall_address=config.contracts.multicall_address,
            router_proxy_factory_address=config.contracts.router_proxy_factory_address,
            smart_router_address=config.contracts.smart_router_address,
            reader_address=config.contracts.reader_address,
            request_timeout=config.network.request_timeout_seconds,
            realtime_timeout=config.network.realtime_timeout_seconds,
            gas_limit_multiplier=config.order.gas_limit_multiplier,
        )
        return cls(client_config)

    @property
    def address(self) -> str:
        """Address of the signing account."""
        return self._account.address

    async def close(self) -> None:
        """Release the providers' HTTP sessions."""
        providers = [self._w3.provider]
        if self._realtime_provider is not self._w3.provider:
            providers.append(self._realtime_provider)
        for provider in providers:
            disconnect = getattr(provider, 'disconnect', None)
            if disconnect is not None:
                await disconnect()
        logger.info("Chain client closed")

    # ==================== Reads ====================

    async def multicall_read(self, calls: Sequence[ContractCall]) -> List[Any]:
        """
        Execute read calls through Multicall3 ``aggregate3``.

        Raises:
            RpcError: If the batch call fails or any inner call reverts.
        """
        if not calls:
            return []

        batch = aggregate3(self.config.multicall_address, calls)
        try:
            raw = await self._w3.eth.call({'to': batch.to, 'data': Web3.to_hex(batch.encode())})
        except Web3Exception as e:
            raise RpcError(
                message=f"Multicall failed: {e}",
                method='eth_call',
                details={'calls': [c.signature for c in calls]}
            ) from e

        results = batch.decode_output(bytes(raw))
        values = []
        for call, (success, data) in zip(calls, results):
            if not success:
                raise RpcError(
                    message=f"Read call {call.function_name} on {call.to} reverted",
                    method='eth_call'
                )
            values.append(call.decode_output(data))
        return values

    async def get_user_router(self, user: str) -> str:
        """
        Resolve the user's router through the proxy factory.

        Raises:
            RpcError: If the factory or router implementation is not configured,
                or the call fails.
        """
        if not self.config.router_proxy_factory_address or not self.config.smart_router_address:
            raise RpcError(
                message="Router proxy factory and smart router addresses are required "
                        "to resolve the user router"
            )
        call = compute_proxy_address(
            self.config.router_proxy_factory_address, user, self.config.smart_router_address
        )
        try:
            raw = await self._w3.eth.call({'to': call.to, 'data': Web3.to_hex(call.encode())})
        except Web3Exception as e:
            raise RpcError(message=f"User router lookup failed: {e}", method='eth_call') from e
        return call.decode_output(bytes(raw))

    async def get_book(self, market: Any, depth: int = 1) -> Any:
        """
        Read both semibook configurations of ``market`` and the exchange-wide
        configuration through the reader, in one multicall.

        Pricing a limit order only needs configuration, so no offers are
        read and ``depth`` does not change the request.

        Returns:
            BookSnapshot tagged with the market's tokens and tick spacing.

        Raises:
            RpcError: If the reader address is not configured or the read fails.
        """
        from execution.models import BookSnapshot, GlobalConfig, LocalConfig

        if not self.config.reader_address:
            raise RpcError(message="Reader address is required to read the book")

        reader = self.config.reader_address
        asks_info, bids_info = await self.multicall_read([
            reader_config_info(reader, market.asks_key.as_tuple()),
            reader_config_info(reader, market.bids_key.as_tuple()),
        ])

        def local_config(local) -> LocalConfig:
            return LocalConfig(active=local[0], fee=local[1], density=local[2], offer_gasbase=local[8] * 1000)

        global_ = asks_info[0]
        return BookSnapshot(
            bids_config=local_config(bids_info[1]),
            asks_config=local_config(asks_info[1]),
            market_config=GlobalConfig(gasprice=global_[3], gasmax=global_[4], dead=global_[5]),
            base_address=market.base.address,
            quote_address=market.quote.address,
            tick_spacing=market.tick_spacing,
        )

    # ==================== Transactions ====================

    async def prepare(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fill chain id, fees, gas limit and nonce.

        Gas is estimated before a nonce is taken so that a failing estimate
        does not leave a gap in the account's nonce sequence.
        """
        tx = dict(request)
        tx['from'] = self._account.address
        if isinstance(tx.get('data'), (bytes, bytearray)):
            tx['data'] = Web3.to_hex(tx['data'])

        try:
            tx['chainId'] = await self._get_chain_id()

            if 'gasPrice' not in tx and 'maxFeePerGas' not in tx:
                block = await self._w3.eth.get_block('latest')
                base_fee = block.get('baseFeePerGas')
                if base_fee is not None:
                    priority_fee = await self._w3.eth.max_priority_fee
                    tx['maxPriorityFeePerGas'] = priority_fee
                    tx['maxFeePerGas'] = base_fee * 2 + priority_fee
                    tx['type'] = 2
                else:
                    tx['gasPrice'] = await self._w3.eth.gas_price

            if 'gas' not in tx:
                estimate = await self._w3.eth.estimate_gas(
                    {k: tx[k] for k in ('from', 'to', 'data', 'value') if k in tx}
                )
                tx['gas'] = int(estimate * self.config.gas_limit_multiplier)
        except Web3Exception as e:
            raise RpcError(
                message=f"Failed to prepare transaction: {e}",
                details={'to': tx.get('to')}
            ) from e

        if 'nonce' not in tx:
            tx['nonce'] = await self._nonce_manager.next_nonce()

        return tx

    async def sign(self, prepared: Dict[str, Any]) -> bytes:
        """
        Sign locally; the key never leaves this process.

        Raises:
            RpcError: If the transaction cannot be signed. The nonce taken in
                ``prepare`` is released.
        """
        unsigned = {k: v for k, v in prepared.items() if k != 'from'}
        try:
            signed = self._account.sign_transaction(unsigned)
        except (TypeError, ValueError) as e:
            await self._nonce_manager.reset_from_chain()
            raise RpcError(
                message=f"Failed to sign transaction: {e}",
                details={'to': prepared.get('to'), 'nonce': prepared.get('nonce')}
            ) from e
        return bytes(signed.raw_transaction)

    async def submit_realtime(self, signed: bytes) -> Dict[str, Any]:
        """
        Send through ``realtime_sendRawTransaction``.

        The node only answers once the transaction's outcome is known, and
        answers with the receipt rather than the hash.

        Raises:
            RpcError: On a transport failure, a JSON-RPC error or a response
                without a receipt. Transport failures and JSON-RPC errors
                resync the nonce from the chain.
        """
        try:
            response = await self._realtime_provider.make_request(
                RPCEndpoint(REALTIME_SEND_METHOD), [Web3.to_hex(signed)]
            )
        except (aiohttp.ClientError, Web3Exception) as e:
            await self._nonce_manager.reset_from_chain()
            raise RpcError(
                message=f"Realtime submission failed: {e}",
                method=REALTIME_SEND_METHOD
            ) from e

        error = response.get('error')
        if error:
            # The node rejected the transaction; our local nonce may be ahead.
            await self._nonce_manager.reset_from_chain()
            message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
            raise RpcError(
                message=f"Realtime submission rejected: {message}",
                method=REALTIME_SEND_METHOD,
                rpc_code=error.get('code') if isinstance(error, dict) else None,
                details={'error': error}
            )

        result = response.get('result')
        if not isinstance(result, dict):
            raise RpcError(
                message="Realtime submission returned no receipt",
                method=REALTIME_SEND_METHOD,
                details={'result': result}
            )
        return result

    def _realtime_http_timeout(self) -> Optional[float]:
        # Outlasts the submitter's wait so that its timeout fires first
        if self.config.realtime_timeout is None:
            return None
        return self.config.realtime_timeout + self.config.request_timeout

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._w3.eth.chain_id
        return self._chain_id
