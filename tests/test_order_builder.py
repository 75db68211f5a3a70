import pytest

from chain.abi import ZERO_ADDRESS
from chain.exceptions import InvalidOrderError, InvalidPriceError, StaleBookError
from execution.models import (
    BookSnapshot,
    Direction,
    GlobalConfig,
    LimitOrderOptions,
    LocalConfig,
    OrderType,
    TradeIntent,
)
from execution.order_builder import OrderBuilder, resting_offer_provision
from execution.tick_math import MAX_TICK, price_to_tick

from fakes import BASE_TOKEN, QUOTE_TOKEN, default_book

BASE_LOGIC = '0x00000000000000000000000000000000000000e1'
QUOTE_LOGIC = '0x00000000000000000000000000000000000000e2'


@pytest.fixture
def builder():
    return OrderBuilder()


def intent(market, direction=Direction.BUY, volume=10**18, price=100, fill_wants=True):
    return TradeIntent(market, direction, fill_volume=volume, fill_wants=fill_wants, price=price)


class TestMarketOrder:

    def test_buy_takes_from_asks_with_negated_tick(self, builder, market):
        params = builder.build_market_order(intent(market, Direction.BUY))

        assert params.ol_key == market.asks_key
        assert params.max_tick == -price_to_tick(100, market)
        assert params.fill_volume == 10**18
        assert params.fill_wants is True

    def test_sell_takes_from_bids(self, builder, market):
        params = builder.build_market_order(intent(market, Direction.SELL, fill_wants=False))

        assert params.ol_key == market.bids_key
        assert params.max_tick == price_to_tick(100, market)
        assert params.fill_wants is False

    def test_no_price_is_unbounded(self, builder, market):
        params = builder.build_market_order(intent(market, price=None))

        assert params.max_tick == MAX_TICK

    def test_string_direction_is_accepted(self, builder, market):
        params = builder.build_market_order(intent(market, direction='SELL'))

        assert params.ol_key == market.bids_key

    @pytest.mark.parametrize('volume', [0, -1, 1.5, True, '10'])
    def test_invalid_volume_is_rejected(self, builder, market, volume):
        with pytest.raises(InvalidOrderError):
            builder.build_market_order(intent(market, volume=volume))

    def test_invalid_direction_is_rejected(self, builder, market):
        with pytest.raises(InvalidOrderError):
            builder.build_market_order(intent(market, direction='hold'))

    def test_invalid_price_is_rejected(self, builder, market):
        with pytest.raises(InvalidPriceError):
            builder.build_market_order(intent(market, price=-5))


class TestLimitOrder:

    def test_buy_provision_uses_bids_gasbase(self, builder, market):
        book = BookSnapshot(
            bids_config=LocalConfig(offer_gasbase=50_000),
            asks_config=LocalConfig(offer_gasbase=90_000),
            market_config=GlobalConfig(gasprice=2),
        )

        params = builder.build_limit_order(intent(market, Direction.BUY), book)

        assert params.value == 2 * 10**6 * (1_000_000 + 50_000)
        assert params.ol_key == market.asks_key
        assert params.tick == -price_to_tick(100, market)
        assert params.order_type == OrderType.GTC
        assert params.expiry_date == 0

    def test_sell_provision_uses_asks_gasbase(self, builder, market):
        book = BookSnapshot(
            bids_config=LocalConfig(offer_gasbase=50_000),
            asks_config=LocalConfig(offer_gasbase=90_000),
            market_config=GlobalConfig(gasprice=3),
        )

        params = builder.build_limit_order(intent(market, Direction.SELL), book)

        assert params.value == 3 * 10**6 * (1_000_000 + 90_000)
        assert params.ol_key == market.bids_key

    def test_explicit_value_and_gasreq(self, builder, market, book):
        options = LimitOrderOptions(value=7, resting_order_gasreq=250_000, expiry_date=1_900_000_000)

        params = builder.build_limit_order(intent(market), book, options)

        assert params.value == 7
        assert params.resting_order_gasreq == 250_000
        assert params.expiry_date == 1_900_000_000

    def test_gasreq_default_comes_from_builder(self, market, book):
        params = OrderBuilder(resting_order_gasreq=400_000).build_limit_order(intent(market), book)

        assert params.resting_order_gasreq == 400_000
        assert params.value == 2 * 10**6 * (400_000 + 50_000)

    def test_buy_gives_quote_logic(self, builder, market, book):
        options = LimitOrderOptions(base_token_logic=BASE_LOGIC, quote_token_logic=QUOTE_LOGIC)

        params = builder.build_limit_order(intent(market, Direction.BUY), book, options)

        assert params.taker_gives_logic.lower() == QUOTE_LOGIC.lower()
        assert params.taker_wants_logic.lower() == BASE_LOGIC.lower()

    def test_sell_gives_base_logic(self, builder, market, book):
        options = LimitOrderOptions(base_token_logic=BASE_LOGIC, quote_token_logic=QUOTE_LOGIC)

        params = builder.build_limit_order(intent(market, Direction.SELL), book, options)

        assert params.taker_gives_logic.lower() == BASE_LOGIC.lower()
        assert params.taker_wants_logic.lower() == QUOTE_LOGIC.lower()

    def test_default_logics_are_zero_address(self, builder, market, book):
        params = builder.build_limit_order(intent(market), book)

        assert params.taker_gives_logic == ZERO_ADDRESS
        assert params.taker_wants_logic == ZERO_ADDRESS

    def test_order_type_by_name(self, builder, market, book):
        params = builder.build_limit_order(intent(market), book, LimitOrderOptions(order_type='po'))

        assert params.order_type == OrderType.PO

    def test_unset_order_type_uses_builder_default(self, market, book):
        builder = OrderBuilder(default_order_type=OrderType.IOC)

        assert builder.build_limit_order(intent(market), book).order_type == OrderType.IOC
        assert builder.build_limit_order(
            intent(market), book, LimitOrderOptions(order_type=OrderType.GTCE)
        ).order_type == OrderType.GTCE

    def test_unknown_order_type(self, builder, market, book):
        with pytest.raises(InvalidOrderError):
            builder.build_limit_order(intent(market), book, LimitOrderOptions(order_type='GTD'))

    def test_price_is_required(self, builder, market, book):
        with pytest.raises(InvalidOrderError):
            builder.build_limit_order(intent(market, price=None), book)

    def test_tick_spacing_mismatch_is_stale(self, builder, market):
        book = BookSnapshot(
            bids_config=LocalConfig(),
            asks_config=LocalConfig(),
            market_config=GlobalConfig(),
            tick_spacing=10,
        )

        with pytest.raises(StaleBookError):
            builder.build_limit_order(intent(market), book)

    def test_book_for_other_market_is_stale(self, builder, market):
        book = BookSnapshot(
            bids_config=LocalConfig(),
            asks_config=LocalConfig(),
            market_config=GlobalConfig(),
            base_address=QUOTE_TOKEN,
            quote_address=BASE_TOKEN,
        )

        with pytest.raises(StaleBookError):
            builder.build_limit_order(intent(market), book)

    def test_not_a_snapshot_is_stale(self, builder, market):
        with pytest.raises(StaleBookError):
            builder.build_limit_order(intent(market), {'bids': {}})

    def test_call_targets_order_router_with_value(self, builder, market, book):
        params = builder.build_limit_order(intent(market), book)
        call = params.to_call('0x981Bd234dA6778a6d0132364AfB30f517a9F5aa8')

        assert call.function_name == 'take'
        assert call.value == params.value


class TestCancellation:

    def test_buy_offer_rests_on_bids(self, builder, market):
        params = builder.build_cancellation(market, Direction.BUY, 42)

        assert params.ol_key == market.bids_key
        assert params.offer_id == 42
        assert params.deprovision is True

    def test_sell_offer_rests_on_asks(self, builder, market):
        params = builder.build_cancellation(market, Direction.SELL, 42, deprovision=False)

        assert params.ol_key == market.asks_key
        assert params.deprovision is False

    @pytest.mark.parametrize('offer_id', [-1, '3', None])
    def test_invalid_offer_id(self, builder, market, offer_id):
        with pytest.raises(InvalidOrderError):
            builder.build_cancellation(market, Direction.BUY, offer_id)


def test_provision_formula():
    local = LocalConfig(offer_gasbase=50_000)
    glob = GlobalConfig(gasprice=2)

    assert resting_offer_provision(local, glob, 1_000_000) == 2_100_000_000_000


def test_zero_gasprice_book_needs_no_provision(builder, market):
    params = builder.build_limit_order(intent(market), default_book(market=market))

    assert params.value == 0
