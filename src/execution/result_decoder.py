"""
Result decoder module.

Reads the event logs of a finalized receipt back into trade results.

Market orders are matched by the exchange directly, so the settlement
events carry the account as taker. Limit orders go through the order
router: the router emits its own start event with the user as taker and
then trades on the exchange in its own name, so the exchange's settlement
events carry the router as taker and the resting offer is written with the
router as maker.
"""

import logging
from typing import Any, Dict, List, Optional

from chain.abi import (
    MANGROVE_ORDER_START,
    OFFER_FAIL,
    OFFER_RETRACT,
    OFFER_SUCCESS,
    OFFER_WRITE,
    ORDER_COMPLETE,
    ORDER_START,
    SET_RENEGING,
    iter_events,
)
from chain.exceptions import ResultNotFoundError
from chain.receipt import TxReceipt

from .models import (
    CancelResult,
    Direction,
    Market,
    OLKey,
    RestingOffer,
    TradeIntent,
    TradeResult,
    checksum,
)
from .tick_math import inbound_from_outbound_up

logger = logging.getLogger(__name__)


def _matching(events, ol_key: OLKey, **fields: Any) -> List[Dict[str, Any]]:
    key_hash = ol_key.hash
    return [
        event for event in events
        if event['olKeyHash'] == key_hash and all(event[name] == value for name, value in fields.items())
    ]


class ResultDecoder:
    """
    Decoder for order receipts.

    Example:
        ```python
        decoder = ResultDecoder(exchange_address, order_router_address)
        result = decoder.decode_market_result(receipt, intent, taker=account)
        print(result.amount_received, result.fee_paid)
        ```
    """

    def __init__(self, exchange_address: str, order_router_address: str):
        self.exchange_address = checksum(exchange_address)
        self.order_router_address = checksum(order_router_address)

    def _settlement(
        self,
        receipt: TxReceipt,
        ol_key: OLKey,
        taker: str
    ) -> Optional[TradeResult]:
        """Sum the exchange's settlement events for ``taker`` on ``ol_key``."""
        logs = receipt.logs
        starts = _matching(iter_events(ORDER_START, logs, self.exchange_address), ol_key, taker=taker)
        completes = _matching(iter_events(ORDER_COMPLETE, logs, self.exchange_address), ol_key, taker=taker)
        if not starts and not completes:
            return None

        successes = _matching(iter_events(OFFER_SUCCESS, logs, self.exchange_address), ol_key, taker=taker)
        failures = _matching(iter_events(OFFER_FAIL, logs, self.exchange_address), ol_key, taker=taker)

        got = sum(event['takerWants'] for event in successes)
        gave = sum(event['takerGives'] for event in successes)
        fee = sum(event['fee'] for event in completes)
        bounty = sum(event['penalty'] for event in failures)

        return TradeResult(
            amount_received=got - fee,
            amount_given=gave,
            fee_paid=fee,
            bounty=bounty,
        )

    def decode_market_result(self, receipt: TxReceipt, intent: TradeIntent, taker: str) -> TradeResult:
        """
        Decode a market order receipt.

        Args:
            receipt: Non-reverted receipt of the market order.
            intent: The intent the order was built from.
            taker: Account that sent the order.

        Returns:
            Amounts settled for the taker.

        Raises:
            ResultNotFoundError: If the receipt has no settlement events for
                this taker and market.
        """
        direction = Direction.parse(intent.direction)
        ol_key = intent.market.taker_key(direction)

        result = self._settlement(receipt, ol_key, checksum(taker))
        if result is None:
            raise ResultNotFoundError(
                message=f"No market order events for {intent.market.label} in {receipt.transaction_hash}",
                transaction_hash=receipt.transaction_hash,
                details={'taker': taker, 'direction': direction.value}
            )
        return result

    def decode_limit_result(self, receipt: TxReceipt, intent: TradeIntent, user: str) -> TradeResult:
        """
        Decode a limit order receipt.

        The result's ``offer`` is None when the order was fully matched (or,
        for immediate order types, when nothing was left to post).

        Args:
            receipt: Non-reverted receipt of the limit order.
            intent: The intent the order was built from.
            user: Account that sent the order.

        Returns:
            Amounts settled, plus the resting offer if one was posted.

        Raises:
            ResultNotFoundError: If the router's start event for this user
                and market is missing.
        """
        direction = Direction.parse(intent.direction)
        market: Market = intent.market
        taker_key = market.taker_key(direction)
        resting_key = market.resting_key(direction)
        user = checksum(user)

        starts = _matching(
            iter_events(MANGROVE_ORDER_START, receipt.logs, self.order_router_address), taker_key, taker=user
        )
        if not starts:
            raise ResultNotFoundError(
                message=f"No limit order start event for {market.label} in {receipt.transaction_hash}",
                transaction_hash=receipt.transaction_hash,
                details={'user': user, 'direction': direction.value}
            )

        settled = self._settlement(receipt, taker_key, self.order_router_address)
        if settled is None:
            # Post-only orders never reach the taker side of the book
            settled = TradeResult(amount_received=0, amount_given=0, fee_paid=0, bounty=0)

        offer = self._resting_offer(receipt, resting_key)
        return TradeResult(
            amount_received=settled.amount_received,
            amount_given=settled.amount_given,
            fee_paid=settled.fee_paid,
            bounty=settled.bounty,
            offer=offer,
        )

    def _resting_offer(self, receipt: TxReceipt, resting_key: OLKey) -> Optional[RestingOffer]:
        writes = _matching(
            iter_events(OFFER_WRITE, receipt.logs, self.exchange_address),
            resting_key,
            maker=self.order_router_address,
        )
        if not writes:
            return None

        write = writes[-1]
        offer_id = write['id']

        expiry = None
        renegings = _matching(
            iter_events(SET_RENEGING, receipt.logs, self.order_router_address),
            resting_key,
            offerId=offer_id,
        )
        if renegings:
            expiry = renegings[-1]['date']

        return RestingOffer(
            id=offer_id,
            tick=write['tick'],
            volume_given=write['gives'],
            volume_wanted=inbound_from_outbound_up(write['tick'], write['gives']),
            gas_price=write['gasprice'],
            gas_requirement=write['gasreq'],
            expiry=expiry,
        )

    def decode_cancel_result(
        self,
        receipt: TxReceipt,
        market: Market,
        direction: Direction,
        offer_id: int,
        deprovision: bool = True
    ) -> CancelResult:
        """
        Decode a cancellation receipt.

        Cancelling an offer that was already filled or removed is not an
        error: the result simply reports ``success=False``.
        """
        direction = Direction.parse(direction)
        retracts = _matching(
            iter_events(OFFER_RETRACT, receipt.logs, self.exchange_address),
            market.resting_key(direction),
            maker=self.order_router_address,
            id=offer_id,
        )

        if not retracts:
            logger.debug(f"No retract event for offer {offer_id} on {market.label}")
            return CancelResult(success=False, offer_id=offer_id, deprovision=deprovision)

        return CancelResult(success=True, offer_id=offer_id, deprovision=retracts[-1]['deprovision'])
