"""
Execution module for translating trade intents into on-chain orders.

This module provides the tick/price converter, the authorization gate, the
order builder, the realtime transaction submitter, the receipt decoder and
the OrderExecutor that sequences them.
"""

from .models import (
    Direction,
    OrderType,
    Token,
    OLKey,
    Market,
    TradeIntent,
    LocalConfig,
    GlobalConfig,
    BookSnapshot,
    LimitOrderOptions,
    AuthorizationRecord,
    MarketOrderParams,
    LimitOrderParams,
    CancelOrderParams,
    RestingOffer,
    TradeResult,
    CancelResult,
    OrderOutcome,
)
from .tick_math import (
    MAX_TICK,
    MIN_TICK,
    price_to_tick,
    tick_for_direction,
    human_price_to_raw_price,
    human_price_from_tick,
    max_tick_sentinel,
)
from .approval_gate import ApprovalGate
from .order_builder import OrderBuilder
from .tx_submitter import TransactionSubmitter, TransactionTrace, TxState
from .result_decoder import ResultDecoder
from .order_executor import OrderExecutor, ExecutorConfig

__all__ = [
    # Models
    'Direction',
    'OrderType',
    'Token',
    'OLKey',
    'Market',
    'TradeIntent',
    'LocalConfig',
    'GlobalConfig',
    'BookSnapshot',
    'LimitOrderOptions',
    'AuthorizationRecord',
    'MarketOrderParams',
    'LimitOrderParams',
    'CancelOrderParams',
    'RestingOffer',
    'TradeResult',
    'CancelResult',
    'OrderOutcome',

    # Tick math
    'MAX_TICK',
    'MIN_TICK',
    'price_to_tick',
    'tick_for_direction',
    'human_price_to_raw_price',
    'human_price_from_tick',
    'max_tick_sentinel',

    # Pipeline stages
    'ApprovalGate',
    'OrderBuilder',
    'TransactionSubmitter',
    'TransactionTrace',
    'TxState',
    'ResultDecoder',

    # Order Executor
    'OrderExecutor',
    'ExecutorConfig',
]
