import pytest

from chain.abi import MAX_UINT256, erc20_approve, take, ZERO_ADDRESS
from chain.exceptions import RpcError, SubmissionTimeoutError
from execution.tx_submitter import TransactionSubmitter, TransactionTrace, TxState

from fakes import BASE_TOKEN, EXCHANGE, ORDER_ROUTER, QUOTE_TOKEN, raw_receipt


def limit_call(value=0):
    order = ((QUOTE_TOKEN, BASE_TOKEN, 1), 0, -100, 10**18, True, 0, 0, 1_000_000, ZERO_ADDRESS, ZERO_ADDRESS)
    return take(ORDER_ROUTER, order, value=value)


async def test_finalized_lifecycle(chain):
    submitter = TransactionSubmitter(chain)

    trace = await submitter.execute(erc20_approve(BASE_TOKEN, EXCHANGE, MAX_UINT256))

    assert trace.history == [
        TxState.BUILT, TxState.PREPARED, TxState.SIGNED, TxState.SUBMITTED, TxState.FINALIZED
    ]
    assert trace.state == TxState.FINALIZED
    assert trace.receipt.status is True


async def test_reverted_lifecycle(chain):
    chain.order_receipts.append(raw_receipt(status=False))
    submitter = TransactionSubmitter(chain)

    trace = await submitter.execute(limit_call())

    assert trace.state == TxState.REVERTED
    assert trace.receipt.reverted


async def test_submit_returns_receipt_and_goes_through_realtime_channel(chain):
    chain.order_receipts.append(raw_receipt(block_number=7))
    submitter = TransactionSubmitter(chain)

    receipt = await submitter.submit(limit_call(value=5))

    assert receipt.block_number == 7
    assert len(chain.submitted) == 1
    assert chain.submitted[0]['value'] == 5
    assert chain.submitted[0]['to'] == ORDER_ROUTER


def test_build_omits_zero_value(chain):
    request = TransactionSubmitter(chain).build(limit_call())

    assert 'value' not in request
    assert request['to'] == ORDER_ROUTER
    assert isinstance(request['data'], bytes)


async def test_timeout_raises_without_retry(chain):
    chain.submit_delay = 0.5
    chain.order_receipts.append(raw_receipt())
    submitter = TransactionSubmitter(chain, timeout=0.05)

    with pytest.raises(SubmissionTimeoutError) as exc_info:
        await submitter.submit(limit_call())

    assert exc_info.value.timeout == 0.05
    assert len(chain.prepared) == 1


async def test_malformed_channel_answer_raises_rpc_error(chain):
    chain.order_receipts.append({'result': 'nope'})
    submitter = TransactionSubmitter(chain)

    with pytest.raises(RpcError):
        await submitter.submit(limit_call())


def test_illegal_transition_is_rejected():
    trace = TransactionTrace(call=limit_call())
    trace.advance(TxState.BUILT)

    with pytest.raises(RuntimeError):
        trace.advance(TxState.SUBMITTED)
