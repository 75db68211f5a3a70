"""
Tick/price conversion.

Prices on the book live on a logarithmic grid: a tick ``t`` stands for the
raw price ``1.0001 ** t`` (quote smallest units per base smallest unit),
quantised to multiples of the market's tick spacing.

Rounding policy: a human price that falls between two grid points is
floored on the sell-side grid, so the resolved price never exceeds the
requested one. The buy-side tick is the exact negation of the sell-side
tick, applied once in ``tick_for_direction``.
"""

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, InvalidOperation, localcontext
from typing import Union

from chain.exceptions import InvalidPriceError

from .models import Direction, Market

logger = logging.getLogger(__name__)

TICK_BASE = Decimal("1.0001")
MAX_TICK = 887272
MIN_TICK = -MAX_TICK

_PRECISION = 60

Number = Union[int, float, Decimal, str]


def _to_decimal(value: Number) -> Decimal:
    try:
        price = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError(f"Invalid price: {value!r}", price=value)
    if not price.is_finite():
        raise InvalidPriceError(f"Invalid price: {value!r}", price=value)
    return price


def human_price_to_raw_price(human_price: Number, market: Market) -> Decimal:
    """
    Scale a quote-per-base human price by the decimals difference.

    Raises:
        InvalidPriceError: If the price is not a positive finite number.
    """
    price = _to_decimal(human_price)
    if price <= 0:
        raise InvalidPriceError(
            f"Invalid price: {human_price}. Must be positive.", price=human_price
        )
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return price.scaleb(market.quote.decimals - market.base.decimals)


def raw_price_from_tick(tick: int) -> Decimal:
    """Raw price represented by ``tick``."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return TICK_BASE ** tick


def human_price_from_tick(tick: int, market: Market) -> Decimal:
    """Human quote-per-base price of a sell-side tick."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return raw_price_from_tick(tick).scaleb(market.base.decimals - market.quote.decimals)


def _check_range(tick: int, price: Number) -> None:
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InvalidPriceError(
            f"Price {price} maps to tick {tick}, outside [{MIN_TICK}, {MAX_TICK}]",
            price=price,
            tick=tick
        )


def price_to_tick(human_price: Number, market: Market) -> int:
    """
    Map a human price to the sell-side tick grid of ``market``.

    The tick is the largest multiple of the tick spacing whose price does
    not exceed the requested raw price.

    Args:
        human_price: Quote-per-base price (e.g. 100 USDC per token).
        market: Market providing decimals and tick spacing.

    Returns:
        Sell-side tick.

    Raises:
        InvalidPriceError: If the price is not positive or the tick is out of range.
    """
    raw_price = human_price_to_raw_price(human_price, market)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        estimate = (raw_price.ln() / TICK_BASE.ln()).to_integral_value(rounding=ROUND_FLOOR)
        tick = int(estimate)
        # ln is correctly rounded but the quotient is not; settle grid points exactly
        while raw_price_from_tick(tick + 1) <= raw_price:
            tick += 1
        while raw_price_from_tick(tick) > raw_price:
            tick -= 1

    tick = (tick // market.tick_spacing) * market.tick_spacing
    _check_range(tick, human_price)
    return tick


def tick_for_direction(human_price: Number, market: Market, direction: Direction) -> int:
    """
    Resolve the protocol tick for a trade intent.

    A buy consumes the asks, whose grid is mirrored relative to the sell
    side, so its tick is the negated sell-side tick. This is the only place
    the negation happens.
    """
    tick = price_to_tick(human_price, market)
    if direction == Direction.BUY:
        tick = -tick
    logger.debug(f"Resolved {direction.value} price {human_price} on {market.label} to tick {tick}")
    return tick


def max_tick_sentinel() -> int:
    """Tick used when a market order carries no price bound."""
    return MAX_TICK


def inbound_from_outbound_up(tick: int, outbound: int) -> int:
    """Volume an offer at ``tick`` wants for giving ``outbound``, rounded up."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        wanted = (raw_price_from_tick(tick) * outbound).to_integral_value(rounding=ROUND_CEILING)
    return int(wanted)

