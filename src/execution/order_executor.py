"""
Order execution module.

This module provides the OrderExecutor class, the call-and-return surface of
the client: market orders, resting limit orders, cancellations, balance and
allowance reads, and explicit approvals.

Every order operation is a fixed pipeline:

    validate -> authorization gate -> build -> submit -> decode

Nothing is retried. A reverted order transaction raises
SubmissionFailedError and its receipt is never decoded; an approval sent
earlier in the same call stays in place.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from chain.abi import MAX_UINT128, erc20_balance_of
from chain.exceptions import InvalidOrderError, SubmissionFailedError
from chain.interfaces import BookProvider, ChainReader, TransactionSigner, UserRouterResolver
from chain.receipt import TxReceipt
from utils.logger import get_logger

from .approval_gate import ApprovalGate
from .models import (
    AuthorizationRecord,
    BookSnapshot,
    Direction,
    LimitOrderOptions,
    Market,
    OrderOutcome,
    OrderType,
    TradeIntent,
    checksum,
)
from .order_builder import DEFAULT_RESTING_ORDER_GASREQ, OrderBuilder
from .result_decoder import ResultDecoder
from .tx_submitter import TransactionSubmitter

logger = get_logger(__name__)


@dataclass
class ExecutorConfig:
    """Configuration for OrderExecutor."""
    exchange_address: str
    order_router_address: str
    account: str
    # Book reader contract; the web3 client reads limit-order books through it
    reader_address: Optional[str] = None

    approval_threshold: int = MAX_UINT128
    resting_order_gasreq: int = DEFAULT_RESTING_ORDER_GASREQ
    default_order_type: OrderType = OrderType.GTC
    skip_approval_check: bool = False
    book_depth: int = 1

    # Seconds to wait for the realtime channel; None waits indefinitely
    realtime_timeout: Optional[float] = 30.0

    def __post_init__(self):
        self.exchange_address = checksum(self.exchange_address)
        self.order_router_address = checksum(self.order_router_address)
        self.account = checksum(self.account)
        if self.reader_address is not None:
            self.reader_address = checksum(self.reader_address)

    @classmethod
    def from_settings(cls, config: Any, account: Optional[str] = None) -> 'ExecutorConfig':
        """
        Build from a ``TradingClientConfig``.

        Args:
            config: Loaded client configuration.
            account: Signing account address. Defaults to ``config.account.address``.

        Raises:
            ValueError: If no account address is available.
        """
        account = account or config.account.address
        if not account:
            raise ValueError("An account address is required (account.address or the signer's address)")

        return cls(
            exchange_address=config.contracts.exchange_address,
            order_router_address=config.contracts.order_router_address,
            reader_address=config.contracts.reader_address,
            account=account,
            approval_threshold=config.order.approval_threshold,
            resting_order_gasreq=config.order.resting_order_gasreq,
            default_order_type=OrderType[config.order.default_order_type.value],
            skip_approval_check=config.order.skip_approval_check,
            book_depth=config.order.book_depth,
            realtime_timeout=config.network.realtime_timeout_seconds,
        )


class OrderExecutor:
    """
    Order executor for the on-chain order book.

    This class handles:
    - Market orders against the exchange
    - Resting limit orders through the order router (GTC, GTCE, PO, IOC, FOK)
    - Cancellation of resting offers
    - Balance and allowance reads, explicit approvals

    Example:
        ```python
        from config import load_config
        from chain import Web3ChainClient
        from execution import OrderExecutor, ExecutorConfig, TradeIntent, Direction

        config = load_config('config/config.yaml')
        chain = Web3ChainClient.from_config(config)
        executor = OrderExecutor(
            ExecutorConfig.from_settings(config, account=chain.address),
            chain,
        )

        outcome = await executor.market_order(
            TradeIntent(market, Direction.BUY, fill_volume=10**18, fill_wants=True, price=100)
        )
        print(outcome.result.amount_received)
        ```
    """

    def __init__(
        self,
        config: ExecutorConfig,
        chain: Any,
        book_provider: Optional[BookProvider] = None,
        router_resolver: Optional[UserRouterResolver] = None
    ):
        """
        Initialize the order executor.

        Args:
            config: Executor configuration.
            chain: Collaborator implementing ChainReader and TransactionSigner.
            book_provider: Source of book snapshots for limit orders. Defaults to
                           ``chain`` when it implements BookProvider. Optional
                           when every limit order carries its own snapshot.
            router_resolver: Resolves the user router. Defaults to ``chain``
                             when it implements UserRouterResolver.
        """
        if not isinstance(chain, ChainReader) or not isinstance(chain, TransactionSigner):
            raise TypeError("chain must implement ChainReader and TransactionSigner")

        self.config = config
        self.chain = chain
        if book_provider is None and isinstance(chain, BookProvider):
            book_provider = chain
        self.book_provider = book_provider
        if router_resolver is None and isinstance(chain, UserRouterResolver):
            router_resolver = chain
        self.router_resolver = router_resolver

        self.submitter = TransactionSubmitter(chain, timeout=config.realtime_timeout)
        self.gate = ApprovalGate(chain, self.submitter, config.account, threshold=config.approval_threshold)
        self.builder = OrderBuilder(
            resting_order_gasreq=config.resting_order_gasreq,
            default_order_type=config.default_order_type,
        )
        self.decoder = ResultDecoder(config.exchange_address, config.order_router_address)

        logger.info(f"OrderExecutor initialized for account {config.account}")

    @classmethod
    def from_config(cls, config: Any, book_provider: Optional[BookProvider] = None) -> 'OrderExecutor':
        """
        Create an executor backed by a Web3ChainClient.

        Args:
            config: Loaded ``TradingClientConfig``.
            book_provider: Source of book snapshots for limit orders. Defaults
                           to the client, which reads through the reader contract.
        """
        from chain.client import Web3ChainClient

        chain = Web3ChainClient.from_config(config)
        return cls(ExecutorConfig.from_settings(config, account=chain.address), chain, book_provider)

    # ==================== Orders ====================

    async def market_order(
        self,
        intent: TradeIntent,
        skip_approval_check: Optional[bool] = None
    ) -> OrderOutcome:
        """
        Take liquidity from the book.

        Args:
            intent: Trade intent. ``price`` bounds the worst execution price;
                    None trades without a bound.
            skip_approval_check: Skip the allowance check. Defaults to the
                                 configured value.

        Returns:
            OrderOutcome with the receipt and a TradeResult.

        Raises:
            InvalidOrderError: Bad direction or volume (no network call made).
            InvalidPriceError: Bad price bound (no network call made).
            AuthorizationError: The approval transaction reverted.
            SubmissionFailedError: The order transaction reverted.
            SubmissionTimeoutError: The realtime channel did not answer in time.
            ResultNotFoundError: The receipt lacks the settlement events.
        """
        direction = self.builder.validate(intent)
        market = intent.market
        skip = self.config.skip_approval_check if skip_approval_check is None else skip_approval_check

        if not skip:
            await self.gate.check_and_ensure(market.token_given(direction).address, self.config.exchange_address)

        params = self.builder.build_market_order(intent)
        receipt = await self._submit_order(params.to_call(self.config.exchange_address), 'market_order')

        result = self.decoder.decode_market_result(receipt, intent, self.config.account)

        logger.log_trade({
            'operation': 'market_order',
            'direction': direction.value,
            'market': market.label,
            'amount_received': result.amount_received,
            'amount_given': result.amount_given,
            'fee_paid': result.fee_paid,
            'bounty': result.bounty,
            'block': receipt.block_number,
            'tx_hash': receipt.transaction_hash,
        }, msg=(
            f"Got: {result.amount_received}, Gave: {result.amount_given}, Fee: {result.fee_paid}, "
            f"Bounty: {result.bounty}, block {receipt.block_number}: {receipt.transaction_hash}"
        ))
        return OrderOutcome(receipt=receipt, result=result)

    async def limit_order(
        self,
        intent: TradeIntent,
        options: Optional[LimitOrderOptions] = None
    ) -> OrderOutcome:
        """
        Place a limit order; the unmatched part rests on the book.

        Args:
            intent: Trade intent with the exact limit price.
            options: Order type, approval skipping, token logics, user router,
                     book snapshot, gasreq, expiry and value. Unset order type
                     and approval skipping take the configured defaults.
                     Missing router and book are resolved through the
                     collaborators.

        Returns:
            OrderOutcome with the receipt and a TradeResult whose ``offer`` is
            set when part of the order rests on the book.

        Raises:
            InvalidOrderError: Bad direction, volume or missing price.
            InvalidPriceError: Bad price.
            StaleBookError: The book snapshot does not match the market.
            AuthorizationError: The approval transaction reverted.
            SubmissionFailedError: The order transaction reverted.
            SubmissionTimeoutError: The realtime channel did not answer in time.
            ResultNotFoundError: The receipt lacks the order router's start event.
        """
        options = options or LimitOrderOptions()
        skip = self.config.skip_approval_check if options.skip_approval_check is None else options.skip_approval_check

        direction = self.builder.validate(intent, require_price=True)
        market = intent.market

        if not skip:
            user_router = await self._resolve_user_router(options)
            await self.gate.check_and_ensure(market.token_given(direction).address, user_router)

        book = await self._resolve_book(market, options)
        params = self.builder.build_limit_order(intent, book, options)

        logger.log_order_event({
            'operation': 'limit_order',
            'direction': direction.value,
            'market': market.label,
            'order_type': params.order_type.name,
            'tick': params.tick,
            'fill_volume': params.fill_volume,
            'fill_wants': params.fill_wants,
            'value': params.value,
        }, level=logging.DEBUG)

        receipt = await self._submit_order(params.to_call(self.config.order_router_address), 'limit_order')
        result = self.decoder.decode_limit_result(receipt, intent, self.config.account)

        message = (
            f"Got: {result.amount_received}, Gave: {result.amount_given}, Fee: {result.fee_paid}, "
            f"Bounty: {result.bounty}"
        )
        offer = result.offer
        if offer is not None:
            message += (
                f"; limit order offer posted with id {offer.id}, tick {offer.tick}, "
                f"gives {offer.volume_given}, wants {offer.volume_wanted}, gasprice {offer.gas_price}, "
                f"gasreq {offer.gas_requirement}, expiry {offer.expiry}"
            )
        message += f"; block {receipt.block_number}: {receipt.transaction_hash}"

        logger.log_trade({
            'operation': 'limit_order',
            'direction': direction.value,
            'market': market.label,
            'amount_received': result.amount_received,
            'amount_given': result.amount_given,
            'fee_paid': result.fee_paid,
            'bounty': result.bounty,
            'offer_id': offer.id if offer else None,
            'block': receipt.block_number,
            'tx_hash': receipt.transaction_hash,
        }, msg=message)
        return OrderOutcome(receipt=receipt, result=result)

    async def cancel_limit_order(
        self,
        market: Market,
        direction: Direction,
        offer_id: int,
        deprovision: bool = True
    ) -> OrderOutcome:
        """
        Remove a resting offer posted by a limit order.

        Cancelling an offer that no longer exists succeeds with
        ``result.success`` set to False.

        Args:
            market: Market the offer was posted on.
            direction: Direction of the original limit order.
            offer_id: Id of the resting offer.
            deprovision: Reclaim the native value locked for the offer.

        Returns:
            OrderOutcome with the receipt and a CancelResult.

        Raises:
            InvalidOrderError: Bad direction or offer id.
            SubmissionFailedError: The cancellation transaction reverted.
            SubmissionTimeoutError: The realtime channel did not answer in time.
        """
        params = self.builder.build_cancellation(market, direction, offer_id, deprovision)
        receipt = await self._submit_order(params.to_call(self.config.order_router_address), 'cancel_limit_order')

        result = self.decoder.decode_cancel_result(receipt, market, direction, offer_id, params.deprovision)

        if result.success:
            message = f"Limit order offer retracted with id {offer_id}, deprovision {result.deprovision}"
        else:
            message = f"Limit order offer not found with id {offer_id}"
        logger.log_order_event({
            'operation': 'cancel_limit_order',
            'direction': Direction.parse(direction).value,
            'market': market.label,
            'offer_id': offer_id,
            'success': result.success,
            'deprovision': result.deprovision,
            'block': receipt.block_number,
            'tx_hash': receipt.transaction_hash,
        }, msg=f"{message}; block {receipt.block_number}: {receipt.transaction_hash}")
        return OrderOutcome(receipt=receipt, result=result)

    # ==================== Balances and approvals ====================

    async def get_balances(self, markets: Sequence[Market]) -> Dict[str, int]:
        """
        Read the account's base and quote balances for each market.

        Returns:
            Mapping of token address to balance in smallest units.
        """
        calls = []
        tokens: List[str] = []
        for market in markets:
            for token in (market.base, market.quote):
                tokens.append(token.address)
                calls.append(erc20_balance_of(token.address, self.config.account))

        if not calls:
            return {}

        values = await self.chain.multicall_read(calls)
        return {token: int(value) for token, value in zip(tokens, values)}

    async def get_approvals(self, pairs: Sequence[Tuple[str, str]]) -> List[AuthorizationRecord]:
        """Read the account's allowance for each ``(token, spender)`` pair."""
        return await self.gate.get_approvals(pairs)

    async def give_approval_to(self, token: str, spender: str, amount: Optional[int] = None) -> TxReceipt:
        """
        Approve ``spender`` for ``token``, for the maximum amount by default.

        Raises:
            AuthorizationError: If the approval transaction reverts.
        """
        return await self.gate.give_approval_to(token, spender, amount)

    # ==================== Internals ====================

    async def _submit_order(self, call, operation: str) -> TxReceipt:
        receipt = await self.submitter.submit(call)
        if receipt.reverted:
            logger.log_order_event({
                'operation': operation,
                'block': receipt.block_number,
                'tx_hash': receipt.transaction_hash,
                'status': 'reverted',
            }, msg=f"{operation} reverted at block {receipt.block_number}: {receipt.transaction_hash}", level=logging.ERROR)
            raise SubmissionFailedError(
                message=f"{operation} transaction reverted: {receipt.transaction_hash}",
                receipt=receipt,
                details={'operation': operation, 'block': receipt.block_number}
            )
        return receipt

    async def _resolve_user_router(self, options: LimitOrderOptions) -> str:
        if options.user_router:
            return checksum(options.user_router)
        if self.router_resolver is None:
            raise InvalidOrderError("A user router or a router resolver is required for the approval check")
        return checksum(await self.router_resolver.get_user_router(self.config.account))

    async def _resolve_book(self, market: Market, options: LimitOrderOptions) -> BookSnapshot:
        if options.book is not None:
            return options.book
        if self.book_provider is None:
            raise InvalidOrderError("A book snapshot or a book provider is required for limit orders")
        return await self.book_provider.get_book(market, depth=self.config.book_depth)
