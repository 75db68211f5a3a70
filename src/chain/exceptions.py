"""
Custom exceptions for the trading client.

This module defines a hierarchy of exceptions for the failure modes of
translating trade intents into on-chain operations and submitting them
through the realtime channel.

None of these errors are retried internally; the retry decision is left to
the caller.
"""


class TradingClientError(Exception):
    """Base exception for all trading client errors."""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class InvalidPriceError(TradingClientError):
    """
    Exception raised for a human price that cannot be turned into a tick.

    Raised during local validation, before any network call is made.
    Examples: non-positive price, price whose tick falls outside the
    protocol's tick range.
    """

    def __init__(
        self,
        message: str = "Invalid price",
        price=None,
        tick: int = None,
        details: dict = None
    ):
        super().__init__(message, error_code="INVALID_PRICE", details=details)
        self.price = price
        self.tick = tick


class InvalidOrderError(TradingClientError):
    """
    Exception raised for order parameters rejected by local validation.

    Examples: non-positive fill volume, unknown direction, negative offer id.
    """

    def __init__(self, message: str = "Invalid order parameters", details: dict = None):
        super().__init__(message, error_code="INVALID_ORDER", details=details)


class AuthorizationError(TradingClientError):
    """
    Exception raised when a token spending authorization transaction reverts.

    Any authorization that succeeded earlier in the same call is left in place
    and can be observed with a follow-up allowance query.
    """

    def __init__(
        self,
        message: str = "Approval failed",
        token: str = None,
        spender: str = None,
        receipt=None,
        details: dict = None
    ):
        super().__init__(message, error_code="AUTHORIZATION_FAILED", details=details)
        self.token = token
        self.spender = spender
        self.receipt = receipt


class SubmissionFailedError(TradingClientError):
    """
    Exception raised when an order transaction reverts on-chain.

    The receipt is attached so the caller can inspect the block and hash
    before deciding whether to retry with adjusted parameters.
    """

    def __init__(
        self,
        message: str = "Transaction reverted",
        receipt=None,
        details: dict = None
    ):
        super().__init__(message, error_code="SUBMISSION_FAILED", details=details)
        self.receipt = receipt


class SubmissionTimeoutError(TradingClientError):
    """
    Exception raised when the realtime channel does not answer in time.

    The signed transaction may still be included later, so this is distinct
    from a revert.
    """

    def __init__(
        self,
        message: str = "Realtime submission timed out",
        timeout: float = None,
        details: dict = None
    ):
        super().__init__(message, error_code="SUBMISSION_TIMEOUT", details=details)
        self.timeout = timeout


class ResultNotFoundError(TradingClientError):
    """
    Exception raised when a successful receipt lacks the expected trade events.

    A non-reverted order transaction always emits them, so this signals an
    invariant violation (wrong contract address, wrong taker, wrong market).
    """

    def __init__(
        self,
        message: str = "Trade result not found in receipt logs",
        transaction_hash: str = None,
        details: dict = None
    ):
        super().__init__(message, error_code="RESULT_NOT_FOUND", details=details)
        self.transaction_hash = transaction_hash


class StaleBookError(TradingClientError):
    """
    Exception raised when a book snapshot does not belong to the traded market.
    """

    def __init__(self, message: str = "Book snapshot incompatible with market", details: dict = None):
        super().__init__(message, error_code="STALE_BOOK", details=details)


class RpcError(TradingClientError):
    """
    Exception raised when the node answers with a JSON-RPC error or an
    unusable response.
    """

    def __init__(
        self,
        message: str = "RPC request failed",
        method: str = None,
        rpc_code: int = None,
        details: dict = None
    ):
        super().__init__(message, error_code="RPC_ERROR", details=details)
        self.method = method
        self.rpc_code = rpc_code
