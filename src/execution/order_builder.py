"""
Order builder module.

Turns a trade intent into the protocol-native parameter sets for market
orders, resting limit orders and cancellations. Every builder validates
locally and raises before anything is sent to the node.
"""

import logging
from typing import Optional

from chain.exceptions import InvalidOrderError, StaleBookError

from .models import (
    BookSnapshot,
    CancelOrderParams,
    Direction,
    GlobalConfig,
    LimitOrderOptions,
    LimitOrderParams,
    LocalConfig,
    Market,
    MarketOrderParams,
    OrderType,
    TradeIntent,
    checksum,
)
from .tick_math import max_tick_sentinel, tick_for_direction

logger = logging.getLogger(__name__)

DEFAULT_RESTING_ORDER_GASREQ = 1_000_000

# Global gasprice is expressed in Mwei
GASPRICE_UNIT = 10**6


def _validate_volume(intent: TradeIntent) -> None:
    if not isinstance(intent.fill_volume, int) or isinstance(intent.fill_volume, bool):
        raise InvalidOrderError(
            f"Invalid fill volume: {intent.fill_volume!r}. Must be an integer in smallest units."
        )
    if intent.fill_volume <= 0:
        raise InvalidOrderError(f"Invalid fill volume: {intent.fill_volume}. Must be positive.")


def resting_offer_provision(
    local_config: LocalConfig,
    global_config: GlobalConfig,
    gasreq: int
) -> int:
    """Native value locked to cover a resting offer's execution bounty."""
    return global_config.gasprice * GASPRICE_UNIT * (gasreq + local_config.offer_gasbase)


class OrderBuilder:
    """
    Builder for protocol-native order parameters.

    A buy takes from the asks semibook and rests on the bids semibook; a
    sell does the opposite. Prices are resolved to ticks through
    ``tick_for_direction``, which applies the buy-side negation.

    Example:
        ```python
        builder = OrderBuilder()

        params = builder.build_market_order(
            TradeIntent(market, Direction.BUY, fill_volume=10**18, fill_wants=True, price=100)
        )
        call = params.to_call(exchange_address)
        ```
    """

    def __init__(
        self,
        resting_order_gasreq: int = DEFAULT_RESTING_ORDER_GASREQ,
        default_order_type: OrderType = OrderType.GTC
    ):
        """
        Initialize the order builder.

        Args:
            resting_order_gasreq: Default gas reserved for a resting offer's execution.
            default_order_type: Order type used when the options leave it unset.
        """
        self.resting_order_gasreq = resting_order_gasreq
        self.default_order_type = default_order_type

    def validate(self, intent: TradeIntent, require_price: bool = False) -> Direction:
        """
        Check an intent without building anything.

        Resolves the price to a tick when one is given, so a bad price is
        rejected here rather than after an approval was sent.

        Returns:
            The parsed direction.

        Raises:
            InvalidOrderError: If direction, volume or a required price is invalid.
            InvalidPriceError: If the price cannot be mapped to a tick.
        """
        direction = Direction.parse(intent.direction)
        _validate_volume(intent)
        if intent.price is None:
            if require_price:
                raise InvalidOrderError("A limit order requires a price")
        else:
            tick_for_direction(intent.price, intent.market, direction)
        return direction

    def build_market_order(self, intent: TradeIntent) -> MarketOrderParams:
        """
        Build a market order against the semibook the taker consumes.

        Args:
            intent: Trade intent. ``price`` is the worst acceptable price;
                    None means no bound.

        Returns:
            MarketOrderParams ready to be turned into a call.

        Raises:
            InvalidOrderError: If the volume is not a positive integer.
            InvalidPriceError: If the price bound cannot be mapped to a tick.
        """
        direction = Direction.parse(intent.direction)
        _validate_volume(intent)

        if intent.price is None:
            max_tick = max_tick_sentinel()
        else:
            max_tick = tick_for_direction(intent.price, intent.market, direction)

        params = MarketOrderParams(
            ol_key=intent.market.taker_key(direction),
            fill_volume=intent.fill_volume,
            fill_wants=intent.fill_wants,
            max_tick=max_tick,
        )
        logger.debug(
            f"Built market order {direction.value} {intent.market.label}: "
            f"volume={intent.fill_volume} fill_wants={intent.fill_wants} max_tick={max_tick}"
        )
        return params

    def build_limit_order(
        self,
        intent: TradeIntent,
        book: BookSnapshot,
        options: Optional[LimitOrderOptions] = None
    ) -> LimitOrderParams:
        """
        Build a limit order for the order router.

        The tick is taken on the semibook the taker consumes; whatever is
        not matched rests on the opposite semibook, whose local configuration
        (offer gasbase) sizes the provision.

        Args:
            intent: Trade intent with the exact limit price.
            book: Configuration snapshot of the market's book.
            options: Order type, token logics, gasreq, expiry and value.

        Returns:
            LimitOrderParams ready to be turned into a call.

        Raises:
            InvalidOrderError: If the volume or price is missing or invalid.
            InvalidPriceError: If the price cannot be mapped to a tick.
            StaleBookError: If the snapshot does not belong to the market.
        """
        options = options or LimitOrderOptions()
        direction = Direction.parse(intent.direction)
        _validate_volume(intent)
        if intent.price is None:
            raise InvalidOrderError("A limit order requires a price")

        self._check_book(book, intent.market)

        tick = tick_for_direction(intent.price, intent.market, direction)

        local_config = book.bids_config if direction == Direction.BUY else book.asks_config
        gasreq = self.resting_order_gasreq if options.resting_order_gasreq is None else options.resting_order_gasreq
        if gasreq < 0:
            raise InvalidOrderError(f"Invalid resting order gasreq: {gasreq}")

        base_logic = checksum(options.base_token_logic)
        quote_logic = checksum(options.quote_token_logic)
        if direction == Direction.BUY:
            gives_logic, wants_logic = quote_logic, base_logic
        else:
            gives_logic, wants_logic = base_logic, quote_logic

        if options.value is None:
            value = resting_offer_provision(local_config, book.market_config, gasreq)
        else:
            value = options.value

        order_type = self.default_order_type if options.order_type is None else options.order_type
        if not isinstance(order_type, OrderType):
            try:
                order_type = OrderType[str(order_type).upper()]
            except KeyError:
                raise InvalidOrderError(f"Unknown order type: {options.order_type}")

        expiry = options.expiry_date or 0
        if expiry < 0:
            raise InvalidOrderError(f"Invalid expiry date: {expiry}")

        params = LimitOrderParams(
            ol_key=intent.market.taker_key(direction),
            tick=tick,
            order_type=order_type,
            fill_volume=intent.fill_volume,
            fill_wants=intent.fill_wants,
            resting_order_gasreq=gasreq,
            taker_gives_logic=gives_logic,
            taker_wants_logic=wants_logic,
            expiry_date=expiry,
            value=value,
        )
        logger.debug(
            f"Built {order_type.name} limit order {direction.value} {intent.market.label}: "
            f"tick={tick} volume={intent.fill_volume} gasreq={gasreq} value={value}"
        )
        return params

    def build_cancellation(
        self,
        market: Market,
        direction: Direction,
        offer_id: int,
        deprovision: bool = True
    ) -> CancelOrderParams:
        """
        Build the removal of a resting offer.

        Args:
            market: Market the offer was posted on.
            direction: Direction of the original limit order.
            offer_id: Id of the resting offer.
            deprovision: Reclaim the native value locked for the offer.

        Raises:
            InvalidOrderError: If the offer id is not a non-negative integer.
        """
        direction = Direction.parse(direction)
        if not isinstance(offer_id, int) or isinstance(offer_id, bool) or offer_id < 0:
            raise InvalidOrderError(f"Invalid offer id: {offer_id!r}")

        return CancelOrderParams(
            ol_key=market.resting_key(direction),
            offer_id=offer_id,
            deprovision=bool(deprovision),
        )

    def _check_book(self, book: BookSnapshot, market: Market) -> None:
        if not isinstance(book, BookSnapshot):
            raise StaleBookError(f"Expected a book snapshot, got {type(book).__name__}")

        for name in ('bids_config', 'asks_config'):
            if not isinstance(getattr(book, name), LocalConfig):
                raise StaleBookError(f"Book snapshot is missing {name}")
        if not isinstance(book.market_config, GlobalConfig):
            raise StaleBookError("Book snapshot is missing the market configuration")

        if book.tick_spacing is not None and book.tick_spacing != market.tick_spacing:
            raise StaleBookError(
                f"Book tick spacing {book.tick_spacing} does not match market "
                f"{market.label} tick spacing {market.tick_spacing}",
                details={'book_tick_spacing': book.tick_spacing, 'market_tick_spacing': market.tick_spacing}
            )

        for name, expected in (('base_address', market.base.address), ('quote_address', market.quote.address)):
            actual = getattr(book, name)
            if actual is not None and checksum(actual) != expected:
                raise StaleBookError(
                    f"Book {name} {actual} does not match market {market.label}",
                    details={name: actual, 'expected': expected}
                )
