"""
Domain models for order translation and submission.

All models are immutable: a call builds its intent, parameters, receipt and
result fresh and never mutates them afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from eth_utils import is_address, to_checksum_address

from chain.abi import (
    ZERO_ADDRESS,
    ContractCall,
    market_order_by_tick,
    ol_key_hash,
    retract_offer,
    take,
)
from chain.exceptions import InvalidOrderError


def checksum(address: str) -> str:
    """Validate and checksum an address."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidOrderError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


class Direction(str, Enum):
    """Trade direction, from the taker's point of view on the base asset."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Any) -> 'Direction':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidOrderError(f"Invalid direction: {value}. Must be 'buy' or 'sell'.")


class OrderType(Enum):
    """Limit order types with the order router's numeric codes."""
    GTC = 0   # Good-till-cancelled
    GTCE = 1  # Good-till-cancelled with enforced expiry
    PO = 2    # Post-only
    IOC = 3   # Immediate-or-cancel
    FOK = 4   # Fill-or-kill


@dataclass(frozen=True)
class Token:
    """An ERC-20 asset."""
    address: str
    decimals: int
    symbol: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'address', checksum(self.address))
        if self.decimals < 0:
            raise InvalidOrderError(f"Invalid decimals for {self.address}: {self.decimals}")


@dataclass(frozen=True)
class OLKey:
    """Identifies one semibook: tokens flow from ``outbound_tkn`` to the taker."""
    outbound_tkn: str
    inbound_tkn: str
    tick_spacing: int

    def as_tuple(self) -> Tuple[str, str, int]:
        return (self.outbound_tkn, self.inbound_tkn, self.tick_spacing)

    @property
    def hash(self) -> bytes:
        return ol_key_hash(self.outbound_tkn, self.inbound_tkn, self.tick_spacing)


@dataclass(frozen=True)
class Market:
    """
    A base/quote pair with its book's tick spacing.

    The asks semibook sells base for quote; the bids semibook sells quote
    for base. A buyer takes from the asks and rests on the bids.
    """
    base: Token
    quote: Token
    tick_spacing: int = 1

    def __post_init__(self):
        if self.tick_spacing <= 0:
            raise InvalidOrderError(f"Invalid tick spacing: {self.tick_spacing}")

    @property
    def asks_key(self) -> OLKey:
        return OLKey(self.base.address, self.quote.address, self.tick_spacing)

    @property
    def bids_key(self) -> OLKey:
        return OLKey(self.quote.address, self.base.address, self.tick_spacing)

    def taker_key(self, direction: Direction) -> OLKey:
        """Semibook consumed by a taker going ``direction``."""
        return self.asks_key if direction == Direction.BUY else self.bids_key

    def resting_key(self, direction: Direction) -> OLKey:
        """Semibook on which the unmatched part of a ``direction`` order rests."""
        return self.bids_key if direction == Direction.BUY else self.asks_key

    def token_given(self, direction: Direction) -> Token:
        return self.quote if direction == Direction.BUY else self.base

    def token_wanted(self, direction: Direction) -> Token:
        return self.base if direction == Direction.BUY else self.quote

    @property
    def label(self) -> str:
        base = self.base.symbol or self.base.address
        quote = self.quote.symbol or self.quote.address
        return f"{base}/{quote}"


@dataclass(frozen=True)
class TradeIntent:
    """
    An already-decided trade, in human terms.

    ``fill_volume`` is in the smallest unit of the wanted asset when
    ``fill_wants`` is true, of the given asset otherwise. ``price`` is the
    human quote-per-base price: a bound for market orders (None means
    unbounded), the exact limit price for limit orders.
    """
    market: Market
    direction: Direction
    fill_volume: int
    fill_wants: bool
    price: Optional[float] = None


@dataclass(frozen=True)
class LocalConfig:
    """Per-semibook configuration."""
    active: bool = True
    fee: int = 0
    offer_gasbase: int = 0
    density: int = 0


@dataclass(frozen=True)
class GlobalConfig:
    """Exchange-wide configuration; ``gasprice`` is in Mwei."""
    gasprice: int = 0
    gasmax: int = 0
    dead: bool = False


@dataclass(frozen=True)
class BookSnapshot:
    """
    Configuration snapshot of a market's book.

    ``base_address``, ``quote_address`` and ``tick_spacing`` identify the
    market the snapshot was taken for, when the provider knows them.
    """
    bids_config: LocalConfig
    asks_config: LocalConfig
    market_config: GlobalConfig
    base_address: Optional[str] = None
    quote_address: Optional[str] = None
    tick_spacing: Optional[int] = None


@dataclass(frozen=True)
class LimitOrderOptions:
    """
    Optional knobs for a limit order.

    ``order_type`` and ``skip_approval_check`` left as None take the
    executor's configured defaults.
    """
    order_type: Optional[OrderType] = None
    skip_approval_check: Optional[bool] = None
    base_token_logic: str = ZERO_ADDRESS
    quote_token_logic: str = ZERO_ADDRESS
    user_router: Optional[str] = None
    book: Optional[BookSnapshot] = None
    resting_order_gasreq: Optional[int] = None
    expiry_date: Optional[int] = None
    value: Optional[int] = None


@dataclass(frozen=True)
class AuthorizationRecord:
    """Allowance snapshot for a token/spender pair."""
    token: str
    spender: str
    allowance: int


# ==================== Protocol-native parameters ====================

@dataclass(frozen=True)
class MarketOrderParams:
    ol_key: OLKey
    fill_volume: int
    fill_wants: bool
    max_tick: int

    def to_call(self, exchange_address: str) -> ContractCall:
        return market_order_by_tick(
            exchange_address, self.ol_key.as_tuple(), self.max_tick, self.fill_volume, self.fill_wants
        )


@dataclass(frozen=True)
class LimitOrderParams:
    ol_key: OLKey
    tick: int
    order_type: OrderType
    fill_volume: int
    fill_wants: bool
    resting_order_gasreq: int
    taker_gives_logic: str = ZERO_ADDRESS
    taker_wants_logic: str = ZERO_ADDRESS
    expiry_date: int = 0
    value: int = 0
    offer_id: int = 0

    def to_call(self, order_router_address: str) -> ContractCall:
        taker_order = (
            self.ol_key.as_tuple(),
            self.order_type.value,
            self.tick,
            self.fill_volume,
            self.fill_wants,
            self.expiry_date,
            self.offer_id,
            self.resting_order_gasreq,
            self.taker_gives_logic,
            self.taker_wants_logic,
        )
        return take(order_router_address, taker_order, value=self.value)


@dataclass(frozen=True)
class CancelOrderParams:
    ol_key: OLKey
    offer_id: int
    deprovision: bool

    def to_call(self, order_router_address: str) -> ContractCall:
        return retract_offer(order_router_address, self.ol_key.as_tuple(), self.offer_id, self.deprovision)


# ==================== Results ====================

@dataclass(frozen=True)
class RestingOffer:
    """The unmatched remainder of a limit order, posted on the book."""
    id: int
    tick: int
    volume_given: int
    volume_wanted: int
    gas_price: int
    gas_requirement: int
    expiry: Optional[int] = None


@dataclass(frozen=True)
class TradeResult:
    """Amounts settled for the taker, in smallest units."""
    amount_received: int
    amount_given: int
    fee_paid: int
    bounty: int
    offer: Optional[RestingOffer] = None


@dataclass(frozen=True)
class CancelResult:
    success: bool
    offer_id: int
    deprovision: bool


@dataclass(frozen=True)
class OrderOutcome:
    """What every order operation returns: the receipt and its decoded result."""
    receipt: Any
    result: Any
