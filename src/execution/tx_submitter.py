"""
Transaction submission through the realtime channel.

Each submission walks a fixed state machine:

    BUILT -> PREPARED -> SIGNED -> SUBMITTED -> FINALIZED | REVERTED

The SUBMITTED transition goes through the signer's realtime send method,
not the generic broadcast path. The channel answers with the receipt once
the outcome is known; the wait is bounded by ``timeout``.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from chain.abi import ContractCall
from chain.exceptions import SubmissionTimeoutError
from chain.interfaces import TransactionSigner
from chain.receipt import TxReceipt
from utils.logger import get_logger

logger = get_logger(__name__)


class TxState(Enum):
    """Lifecycle of one transaction."""
    BUILT = "built"
    PREPARED = "prepared"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    FINALIZED = "finalized"
    REVERTED = "reverted"


_TRANSITIONS = {
    None: {TxState.BUILT},
    TxState.BUILT: {TxState.PREPARED},
    TxState.PREPARED: {TxState.SIGNED},
    TxState.SIGNED: {TxState.SUBMITTED},
    TxState.SUBMITTED: {TxState.FINALIZED, TxState.REVERTED},
    TxState.FINALIZED: set(),
    TxState.REVERTED: set(),
}


@dataclass
class TransactionTrace:
    """Per-call record of a transaction's progress."""
    call: ContractCall
    state: Optional[TxState] = None
    history: List[TxState] = field(default_factory=list)
    request: Optional[Dict[str, Any]] = None
    receipt: Optional[TxReceipt] = None
    started_at: float = field(default_factory=time.monotonic)

    def advance(self, state: TxState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal transaction transition {self.state} -> {state} "
                f"for {self.call.function_name}"
            )
        self.state = state
        self.history.append(state)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class TransactionSubmitter:
    """
    Owns the low-latency send path.

    Example:
        ```python
        submitter = TransactionSubmitter(chain_client, timeout=30.0)
        receipt = await submitter.submit(erc20_approve(token, spender, MAX_UINT256))
        if receipt.reverted:
            ...
        ```
    """

    def __init__(self, signer: TransactionSigner, timeout: Optional[float] = 30.0):
        """
        Initialize the submitter.

        Args:
            signer: Collaborator that prepares, signs and sends transactions.
            timeout: Seconds to wait for the realtime channel. None waits indefinitely.
        """
        self.signer = signer
        self.timeout = timeout

    def build(self, call: ContractCall) -> Dict[str, Any]:
        """Assemble the unsigned request for ``call``."""
        request: Dict[str, Any] = {
            'to': call.to,
            'data': call.encode(),
        }
        if call.value:
            request['value'] = call.value
        return request

    async def execute(self, call: ContractCall) -> TransactionTrace:
        """
        Run ``call`` through the full lifecycle.

        Returns:
            The trace, ending in FINALIZED or REVERTED, with the receipt attached.

        Raises:
            SubmissionTimeoutError: If the realtime channel does not answer in time.
            RpcError: If the signer or the node rejects the transaction.
        """
        trace = TransactionTrace(call=call)

        trace.request = self.build(call)
        self._advance(trace, TxState.BUILT)

        prepared = await self.signer.prepare(trace.request)
        self._advance(trace, TxState.PREPARED)

        signed = await self.signer.sign(prepared)
        self._advance(trace, TxState.SIGNED)

        self._advance(trace, TxState.SUBMITTED)
        raw_receipt = await self._send_realtime(signed, call)

        trace.receipt = TxReceipt.from_rpc(raw_receipt)
        self._advance(trace, TxState.REVERTED if trace.receipt.reverted else TxState.FINALIZED)
        return trace

    async def submit(self, call: ContractCall) -> TxReceipt:
        """Run ``call`` and return its receipt (reverted receipts included)."""
        trace = await self.execute(call)
        return trace.receipt

    def _advance(self, trace: TransactionTrace, state: TxState) -> None:
        trace.advance(state)
        event = {
            'function': trace.call.function_name,
            'to': trace.call.to,
            'state': state.value,
            'elapsed': round(trace.elapsed, 4),
        }
        if trace.receipt is not None:
            event['block'] = trace.receipt.block_number
            event['tx_hash'] = trace.receipt.transaction_hash
        logger.log_transaction_event(event)

    async def _send_realtime(self, signed: bytes, call: ContractCall) -> Dict[str, Any]:
        if self.timeout is None:
            return await self.signer.submit_realtime(signed)
        try:
            return await asyncio.wait_for(self.signer.submit_realtime(signed), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Realtime submission of {call.function_name} timed out after {self.timeout}s")
            raise SubmissionTimeoutError(
                message=f"No receipt for {call.function_name} after {self.timeout}s; "
                        "the transaction may still be included",
                timeout=self.timeout,
                details={'to': call.to}
            ) from e
