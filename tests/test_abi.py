import pytest
from eth_abi import decode, encode
from eth_utils import keccak

from chain.abi import (
    MAX_UINT256,
    OFFER_SUCCESS,
    OFFER_WRITE,
    ORDER_START,
    ZERO_ADDRESS,
    aggregate3,
    decode_event,
    encode_event,
    erc20_allowance,
    erc20_approve,
    iter_events,
    ol_key_hash,
    retract_offer,
    split_types,
    take,
)

from fakes import ACCOUNT, BASE_TOKEN, EXCHANGE, ORDER_ROUTER, QUOTE_TOKEN


class TestTypes:

    def test_split_types_keeps_nested_tuples(self):
        assert split_types('(address,uint256),bool') == ['(address,uint256)', 'bool']
        assert split_types('((address,address,uint256),uint8),int256') == [
            '((address,address,uint256),uint8)', 'int256'
        ]

    def test_empty_type_list(self):
        assert split_types('') == []


class TestCalls:

    def test_approve_selector(self):
        call = erc20_approve(BASE_TOKEN, EXCHANGE, MAX_UINT256)

        data = call.encode()
        assert data[:4].hex() == '095ea7b3'
        spender, amount = decode(['address', 'uint256'], data[4:])
        assert spender.lower() == EXCHANGE.lower()
        assert amount == MAX_UINT256

    def test_allowance_decodes_single_output(self):
        call = erc20_allowance(BASE_TOKEN, ACCOUNT, EXCHANGE)

        assert call.function_name == 'allowance'
        assert call.decode_output(encode(['uint256'], [42])) == 42

    def test_aggregate3_disallows_failures(self):
        inner = erc20_allowance(BASE_TOKEN, ACCOUNT, EXCHANGE)
        batch = aggregate3('0xcA11bde05977b3631167028862bE2a173976CA11', [inner])

        [(target, allow_failure, data)] = batch.args[0]
        assert target == BASE_TOKEN
        assert allow_failure is False
        assert data == inner.encode()

    def test_take_carries_value(self):
        order = ((QUOTE_TOKEN, BASE_TOKEN, 1), 0, -100, 10**18, True, 0, 0, 1_000_000, ZERO_ADDRESS, ZERO_ADDRESS)
        call = take(ORDER_ROUTER, order, value=123)

        assert call.value == 123
        assert call.to == ORDER_ROUTER
        assert call.encode()[:4] == keccak(text=call.signature)[:4]

    def test_retract_offer_arguments(self):
        call = retract_offer(ORDER_ROUTER, (BASE_TOKEN, QUOTE_TOKEN, 1), 7, True)

        ol_key, offer_id, deprovision = decode(
            ['(address,address,uint256)', 'uint256', 'bool'], call.encode()[4:]
        )
        assert offer_id == 7
        assert deprovision is True
        assert ol_key[2] == 1


class TestOlKeyHash:

    def test_asks_and_bids_hash_differently(self):
        assert ol_key_hash(BASE_TOKEN, QUOTE_TOKEN, 1) != ol_key_hash(QUOTE_TOKEN, BASE_TOKEN, 1)

    def test_tick_spacing_is_part_of_the_key(self):
        assert ol_key_hash(BASE_TOKEN, QUOTE_TOKEN, 1) != ol_key_hash(BASE_TOKEN, QUOTE_TOKEN, 10)


class TestEvents:

    def test_offer_success_signature(self):
        assert OFFER_SUCCESS.signature == 'OfferSuccess(bytes32,address,uint256,uint256,uint256)'
        assert OFFER_SUCCESS.topic == keccak(text=OFFER_SUCCESS.signature)

    def test_decode_encoded_event(self):
        key = ol_key_hash(BASE_TOKEN, QUOTE_TOKEN, 1)
        log = encode_event(
            OFFER_WRITE, EXCHANGE,
            olKeyHash=key, maker=ORDER_ROUTER.lower(), tick=-230271, gives=5, gasprice=2, gasreq=1_000_000, id=9,
        )

        decoded = decode_event(OFFER_WRITE, log)

        assert decoded['olKeyHash'] == key
        assert decoded['maker'] == ORDER_ROUTER
        assert decoded['tick'] == -230271
        assert decoded['id'] == 9

    def test_decode_rejects_other_event(self):
        log = encode_event(
            ORDER_START, EXCHANGE,
            olKeyHash=b'\x00' * 32, taker=ACCOUNT, maxTick=1, fillVolume=1, fillWants=True,
        )
        with pytest.raises(ValueError):
            decode_event(OFFER_WRITE, log)

    def test_iter_events_filters_emitter(self):
        log = encode_event(
            ORDER_START, EXCHANGE,
            olKeyHash=b'\x00' * 32, taker=ACCOUNT, maxTick=1, fillVolume=1, fillWants=True,
        )

        assert len(list(iter_events(ORDER_START, [log], EXCHANGE))) == 1
        assert list(iter_events(ORDER_START, [log], ORDER_ROUTER)) == []
