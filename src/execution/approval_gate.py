"""
Token spending authorization.

The gate is checked before every order-affecting call. It re-reads the
allowance on each call and never caches it: the authorization ledger is
owned by the chain and may change between calls.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from chain.abi import MAX_UINT128, MAX_UINT256, erc20_allowance, erc20_approve
from chain.exceptions import AuthorizationError
from chain.interfaces import ChainReader
from chain.receipt import TxReceipt
from utils.logger import get_logger

from .models import AuthorizationRecord, checksum
from .tx_submitter import TransactionSubmitter

logger = get_logger(__name__)


class ApprovalGate:
    """
    Checks and raises ERC-20 allowances for an owner account.

    Allowances are topped up to the maximum representable amount whenever
    they fall below ``threshold`` (2**128 - 1 by default), so a spender that
    was approved once is not re-approved on every order.

    Example:
        ```python
        gate = ApprovalGate(chain_client, submitter, owner=chain_client.address)
        receipt = await gate.check_and_ensure(usdc, exchange)
        if receipt is None:
            # allowance already sufficient
            ...
        ```
    """

    def __init__(
        self,
        reader: ChainReader,
        submitter: TransactionSubmitter,
        owner: str,
        threshold: int = MAX_UINT128
    ):
        """
        Initialize the gate.

        Args:
            reader: Batched read collaborator.
            submitter: Submitter used for approval transactions.
            owner: Account whose allowances are checked.
            threshold: Allowance below which an approval is issued.
        """
        self.reader = reader
        self.submitter = submitter
        self.owner = checksum(owner)
        self.threshold = threshold

    async def get_approvals(self, pairs: Sequence[Tuple[str, str]]) -> List[AuthorizationRecord]:
        """
        Read the owner's allowance for each ``(token, spender)`` pair.

        Args:
            pairs: Token/spender address pairs.

        Returns:
            One record per pair, in order.
        """
        pairs = [(checksum(token), checksum(spender)) for token, spender in pairs]
        if not pairs:
            return []

        calls = [erc20_allowance(token, self.owner, spender) for token, spender in pairs]
        allowances = await self.reader.multicall_read(calls)

        return [
            AuthorizationRecord(token=token, spender=spender, allowance=int(allowance))
            for (token, spender), allowance in zip(pairs, allowances)
        ]

    async def give_approval_to(self, token: str, spender: str, amount: Optional[int] = None) -> TxReceipt:
        """
        Approve ``spender`` to move the owner's ``token``.

        Args:
            token: ERC-20 token address.
            spender: Contract allowed to pull the tokens.
            amount: Allowance to set. Defaults to the maximum uint256.

        Returns:
            The approval receipt.

        Raises:
            AuthorizationError: If the approval transaction reverts.
        """
        token = checksum(token)
        spender = checksum(spender)
        amount = MAX_UINT256 if amount is None else amount

        receipt = await self.submitter.submit(erc20_approve(token, spender, amount))

        if receipt.reverted:
            logger.log_approval_event({
                'token': token,
                'spender': spender,
                'block': receipt.block_number,
                'tx_hash': receipt.transaction_hash,
                'status': 'reverted'
            }, msg=f"Approval of {spender} for token {token} reverted: {receipt.transaction_hash}",
                level=logging.ERROR)
            raise AuthorizationError(
                message=f"Approval failed for token {token} and spender {spender}",
                token=token,
                spender=spender,
                receipt=receipt,
                details={'tx_hash': receipt.transaction_hash}
            )

        logger.log_approval_event({
            'token': token,
            'spender': spender,
            'amount': str(amount),
            'block': receipt.block_number,
            'tx_hash': receipt.transaction_hash,
            'status': 'approved'
        }, msg=(
            f"Approval given for token {token} to {spender} "
            f"at block {receipt.block_number}: {receipt.transaction_hash}"
        ))
        return receipt

    async def check_and_ensure(
        self,
        token: str,
        spender: str,
        required_at_least: int = 0
    ) -> Optional[TxReceipt]:
        """
        Make sure ``spender`` may move the owner's ``token``.

        The allowance is queried on every call. When it is below the gate's
        threshold (or below ``required_at_least`` if that is larger), one
        approval for the maximum amount is sent and awaited.

        Args:
            token: ERC-20 token address.
            spender: Contract that will pull the tokens.
            required_at_least: Minimum allowance the caller needs.

        Returns:
            The approval receipt, or None if no approval was needed.

        Raises:
            AuthorizationError: If the approval transaction reverts.
        """
        [record] = await self.get_approvals([(token, spender)])
        needed = max(self.threshold, required_at_least)

        if record.allowance >= needed:
            logger.debug(
                f"Allowance of {record.spender} for {record.token} is sufficient ({record.allowance})"
            )
            return None

        logger.log_approval_event({
            'token': record.token,
            'spender': record.spender,
            'allowance': str(record.allowance),
            'status': 'insufficient'
        }, msg=f"Allowance of {record.spender} for {record.token} below threshold, approving")

        return await self.give_approval_to(record.token, record.spender, MAX_UINT256)
