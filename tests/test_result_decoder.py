import pytest

from chain.abi import (
    MANGROVE_ORDER_START,
    OFFER_FAIL,
    OFFER_RETRACT,
    OFFER_SUCCESS,
    OFFER_WRITE,
    ORDER_COMPLETE,
    ORDER_START,
    SET_RENEGING,
    ZERO_ADDRESS,
)
from chain.exceptions import ResultNotFoundError
from chain.receipt import TxReceipt
from execution.models import Direction, TradeIntent
from execution.result_decoder import ResultDecoder
from execution.tick_math import inbound_from_outbound_up

from fakes import ACCOUNT, EXCHANGE, ORDER_ROUTER, event, raw_receipt

OTHER_TAKER = '0x00000000000000000000000000000000000000f5'


@pytest.fixture
def decoder():
    return ResultDecoder(EXCHANGE, ORDER_ROUTER)


def receipt_with(*logs):
    return TxReceipt.from_rpc(raw_receipt(logs=logs))


def taking(key, taker, successes=(), failures=(), fee=0):
    """Exchange events of one market order consuming ``key``."""
    logs = [event(ORDER_START, EXCHANGE, olKeyHash=key.hash, taker=taker, maxTick=10, fillVolume=1, fillWants=True)]
    for offer_id, (wants, gives) in enumerate(successes, start=1):
        logs.append(event(
            OFFER_SUCCESS, EXCHANGE, olKeyHash=key.hash, taker=taker, id=offer_id, takerWants=wants, takerGives=gives
        ))
    for offer_id, penalty in enumerate(failures, start=100):
        logs.append(event(
            OFFER_FAIL, EXCHANGE, olKeyHash=key.hash, taker=taker, id=offer_id,
            takerWants=0, takerGives=0, penalty=penalty, mgvData=b'\x00' * 32,
        ))
    logs.append(event(ORDER_COMPLETE, EXCHANGE, olKeyHash=key.hash, taker=taker, fee=fee))
    return logs


def router_start(key, user, tick=-230270):
    return event(
        MANGROVE_ORDER_START, ORDER_ROUTER,
        olKeyHash=key.hash, taker=user, tick=tick, orderType=0, fillVolume=10**18, fillWants=True,
        offerId=0, takerGivesLogic=ZERO_ADDRESS, takerWantsLogic=ZERO_ADDRESS,
    )


def offer_write(key, offer_id=9, tick=230270, gives=5 * 10**6, maker=ORDER_ROUTER):
    return event(
        OFFER_WRITE, EXCHANGE,
        olKeyHash=key.hash, maker=maker, tick=tick, gives=gives, gasprice=2, gasreq=1_000_000, id=offer_id,
    )


class TestMarketResult:

    def test_sums_fills_and_subtracts_fee(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 3 * 10**18, True, 100)
        logs = taking(market.asks_key, ACCOUNT, successes=[(10**18, 100), (2 * 10**18, 210)], fee=3 * 10**15)

        result = decoder.decode_market_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.amount_received == 3 * 10**18 - 3 * 10**15
        assert result.amount_given == 310
        assert result.fee_paid == 3 * 10**15
        assert result.bounty == 0
        assert result.offer is None

    def test_failed_offers_pay_bounty(self, decoder, market):
        intent = TradeIntent(market, Direction.SELL, 10**18, False)
        logs = taking(market.bids_key, ACCOUNT, successes=[(50, 10**18)], failures=[7, 11])

        result = decoder.decode_market_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.bounty == 18
        assert result.amount_received == 50

    def test_ignores_other_takers_and_other_books(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True)
        logs = (
            taking(market.asks_key, ACCOUNT, successes=[(10, 1)])
            + taking(market.asks_key, OTHER_TAKER, successes=[(1000, 100)], fee=5)
            + taking(market.bids_key, ACCOUNT, successes=[(77, 7)])
        )

        result = decoder.decode_market_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.amount_received == 10
        assert result.amount_given == 1
        assert result.fee_paid == 0

    def test_no_fill_is_a_zero_result(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True)

        result = decoder.decode_market_result(receipt_with(*taking(market.asks_key, ACCOUNT)), intent, ACCOUNT)

        assert (result.amount_received, result.amount_given, result.fee_paid) == (0, 0, 0)

    def test_missing_events_raise(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True)

        with pytest.raises(ResultNotFoundError) as exc_info:
            decoder.decode_market_result(receipt_with(), intent, ACCOUNT)

        assert exc_info.value.transaction_hash == '0x' + 'ab' * 32

    def test_events_from_other_contract_are_ignored(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True)
        logs = [
            event(ORDER_START, ORDER_ROUTER, olKeyHash=market.asks_key.hash, taker=ACCOUNT,
                  maxTick=1, fillVolume=1, fillWants=True)
        ]

        with pytest.raises(ResultNotFoundError):
            decoder.decode_market_result(receipt_with(*logs), intent, ACCOUNT)


class TestLimitResult:

    def test_fully_matched_order_has_no_offer(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True, 100)
        logs = [router_start(market.asks_key, ACCOUNT)] + taking(
            market.asks_key, ORDER_ROUTER, successes=[(10**18, 100 * 10**6)], fee=10**15
        )

        result = decoder.decode_limit_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.amount_received == 10**18 - 10**15
        assert result.amount_given == 100 * 10**6
        assert result.offer is None

    def test_partial_fill_posts_offer_on_resting_book(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 2 * 10**18, True, 100)
        logs = (
            [router_start(market.asks_key, ACCOUNT)]
            + taking(market.asks_key, ORDER_ROUTER, successes=[(10**18, 100 * 10**6)])
            + [
                offer_write(market.bids_key, offer_id=9, tick=230270, gives=100 * 10**6),
                event(SET_RENEGING, ORDER_ROUTER, olKeyHash=market.bids_key.hash, offerId=9,
                      date=1_900_000_000, volume=0),
            ]
        )

        result = decoder.decode_limit_result(receipt_with(*logs), intent, ACCOUNT)

        offer = result.offer
        assert offer.id == 9
        assert offer.tick == 230270
        assert offer.volume_given == 100 * 10**6
        assert offer.volume_wanted == inbound_from_outbound_up(230270, 100 * 10**6)
        assert offer.gas_price == 2
        assert offer.gas_requirement == 1_000_000
        assert offer.expiry == 1_900_000_000

    def test_post_only_order_has_zero_settlement(self, decoder, market):
        intent = TradeIntent(market, Direction.SELL, 10**18, False, 100)
        logs = [router_start(market.bids_key, ACCOUNT), offer_write(market.asks_key, offer_id=4)]

        result = decoder.decode_limit_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.amount_received == 0
        assert result.amount_given == 0
        assert result.offer.id == 4
        assert result.offer.expiry is None

    def test_offers_of_other_makers_are_ignored(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True, 100)
        logs = [router_start(market.asks_key, ACCOUNT), offer_write(market.bids_key, maker=OTHER_TAKER)]

        result = decoder.decode_limit_result(receipt_with(*logs), intent, ACCOUNT)

        assert result.offer is None

    def test_start_event_of_other_user_raises(self, decoder, market):
        intent = TradeIntent(market, Direction.BUY, 10**18, True, 100)
        logs = [router_start(market.asks_key, OTHER_TAKER)]

        with pytest.raises(ResultNotFoundError):
            decoder.decode_limit_result(receipt_with(*logs), intent, ACCOUNT)


class TestCancelResult:

    def test_retract_event_means_success(self, decoder, market):
        logs = [event(OFFER_RETRACT, EXCHANGE, olKeyHash=market.bids_key.hash, maker=ORDER_ROUTER,
                      id=9, deprovision=True)]

        result = decoder.decode_cancel_result(receipt_with(*logs), market, Direction.BUY, 9)

        assert result.success is True
        assert result.offer_id == 9
        assert result.deprovision is True

    def test_other_offer_id_is_not_success(self, decoder, market):
        logs = [event(OFFER_RETRACT, EXCHANGE, olKeyHash=market.bids_key.hash, maker=ORDER_ROUTER,
                      id=8, deprovision=True)]

        result = decoder.decode_cancel_result(receipt_with(*logs), market, Direction.BUY, 9)

        assert result.success is False

    def test_no_event_is_not_an_error(self, decoder, market):
        result = decoder.decode_cancel_result(receipt_with(), market, Direction.SELL, 3, deprovision=False)

        assert result.success is False
        assert result.deprovision is False
