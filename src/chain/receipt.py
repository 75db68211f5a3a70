"""
Transaction receipt model.

The realtime channel hands back the receipt as the raw JSON-RPC object
(hex-encoded quantities). This module turns it into a typed, read-only
structure that the result decoder consumes exactly once.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import to_bytes, to_checksum_address

from .exceptions import RpcError


def _to_int(value: Any) -> Optional[int]:
    """Parse a JSON-RPC quantity (hex string or int)."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith(('0x', '0X')) else int(value)
    raise ValueError(f"Unsupported quantity: {value!r}")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return to_bytes(hexstr=value) if value else b''


@dataclass(frozen=True)
class LogEntry:
    """A single event log emitted by a contract."""
    address: str
    topics: Tuple[bytes, ...]
    data: bytes = b''
    log_index: Optional[int] = None

    @property
    def topic0(self) -> Optional[bytes]:
        return self.topics[0] if self.topics else None

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> 'LogEntry':
        return cls(
            address=to_checksum_address(raw['address']),
            topics=tuple(_to_bytes(t) for t in raw.get('topics', [])),
            data=_to_bytes(raw.get('data')),
            log_index=_to_int(raw.get('logIndex')),
        )


@dataclass(frozen=True)
class TxReceipt:
    """Finalized outcome of a submitted transaction."""
    status: bool
    transaction_hash: str
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    logs: Tuple[LogEntry, ...] = field(default_factory=tuple)

    @property
    def reverted(self) -> bool:
        return not self.status

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> 'TxReceipt':
        """
        Build a receipt from a JSON-RPC receipt object.

        Args:
            raw: Receipt dictionary as returned by the node.

        Returns:
            TxReceipt instance.

        Raises:
            RpcError: If the object is not a receipt.
        """
        if not isinstance(raw, dict) or 'status' not in raw or 'transactionHash' not in raw:
            raise RpcError(
                message=f"Malformed receipt returned by node: {raw!r}",
                details={'receipt': raw}
            )

        tx_hash = raw['transactionHash']
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = '0x' + bytes(tx_hash).hex()

        logs: List[LogEntry] = [LogEntry.from_rpc(entry) for entry in raw.get('logs') or []]

        return cls(
            status=_to_int(raw['status']) == 1,
            transaction_hash=tx_hash,
            block_number=_to_int(raw.get('blockNumber')),
            gas_used=_to_int(raw.get('gasUsed')),
            logs=tuple(logs),
        )
