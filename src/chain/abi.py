"""
ABI encoding for the contracts the trading client talks to.

Call data and event topics are derived from canonical Solidity signatures
with eth-utils and encoded/decoded with eth-abi. Only the functions and
events the client actually uses are described here:

- ERC-20: approve, allowance, balanceOf
- Exchange (order book core): marketOrderByTick and the trade events
- Order router (limit orders): take, retractOffer and its own events
- Multicall3: aggregate3
- Router proxy factory: computeProxyAddress
- Book reader: configInfo
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import (
    function_signature_to_4byte_selector,
    keccak,
    to_checksum_address,
)

from .receipt import LogEntry

MAX_UINT256 = 2**256 - 1
MAX_UINT128 = 2**128 - 1
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

OL_KEY_TYPE = '(address,address,uint256)'
TAKER_ORDER_TYPE = (
    f'({OL_KEY_TYPE},uint8,int256,uint256,bool,uint256,uint256,uint256,address,address)'
)


def split_types(type_list: str) -> List[str]:
    """
    Split a comma separated ABI type list at top level.

    Commas nested inside tuple types are kept, so
    ``'(address,uint256),bool'`` gives ``['(address,uint256)', 'bool']``.
    """
    types: List[str] = []
    depth = 0
    current = ''
    for char in type_list:
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
        if char == ',' and depth == 0:
            types.append(current)
            current = ''
        else:
            current += char
    if current:
        types.append(current)
    return types


def signature_types(signature: str) -> List[str]:
    """Return the argument types of a function signature like ``f(uint256,bool)``."""
    inner = signature[signature.index('(') + 1:signature.rindex(')')]
    return split_types(inner)


@dataclass(frozen=True)
class ContractCall:
    """
    A single contract function invocation.

    Holds everything needed to produce call data and, for reads, to decode
    the returned bytes.
    """
    to: str
    signature: str
    args: Tuple[Any, ...] = ()
    output_types: Tuple[str, ...] = ()
    value: int = 0

    @property
    def function_name(self) -> str:
        return self.signature.split('(', 1)[0]

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode(self) -> bytes:
        """Encode selector and arguments into call data."""
        return self.selector + encode(signature_types(self.signature), list(self.args))

    def decode_output(self, data: bytes) -> Any:
        """
        Decode returned bytes using ``output_types``.

        A single output is unwrapped, several are returned as a tuple.
        """
        values = decode(list(self.output_types), data)
        if len(values) == 1:
            return values[0]
        return values


# ==================== Function builders ====================

def erc20_approve(token: str, spender: str, amount: int) -> ContractCall:
    return ContractCall(
        to=token,
        signature='approve(address,uint256)',
        args=(spender, amount),
        output_types=('bool',),
    )


def erc20_allowance(token: str, owner: str, spender: str) -> ContractCall:
    return ContractCall(
        to=token,
        signature='allowance(address,address)',
        args=(owner, spender),
        output_types=('uint256',),
    )


def erc20_balance_of(token: str, owner: str) -> ContractCall:
    return ContractCall(
        to=token,
        signature='balanceOf(address)',
        args=(owner,),
        output_types=('uint256',),
    )


def market_order_by_tick(
    exchange: str,
    ol_key: Tuple[str, str, int],
    max_tick: int,
    fill_volume: int,
    fill_wants: bool
) -> ContractCall:
    return ContractCall(
        to=exchange,
        signature=f'marketOrderByTick({OL_KEY_TYPE},int256,uint256,bool)',
        args=(ol_key, max_tick, fill_volume, fill_wants),
        output_types=('uint256', 'uint256', 'uint256', 'uint256'),
    )


def take(order_router: str, taker_order: Tuple[Any, ...], value: int = 0) -> ContractCall:
    return ContractCall(
        to=order_router,
        signature=f'take({TAKER_ORDER_TYPE})',
        args=(taker_order,),
        value=value,
    )


def retract_offer(
    order_router: str,
    ol_key: Tuple[str, str, int],
    offer_id: int,
    deprovision: bool
) -> ContractCall:
    return ContractCall(
        to=order_router,
        signature=f'retractOffer({OL_KEY_TYPE},uint256,bool)',
        args=(ol_key, offer_id, deprovision),
        output_types=('uint256',),
    )


def aggregate3(multicall: str, calls: Sequence[ContractCall]) -> ContractCall:
    """Batch read calls; every call is sent with ``allowFailure = false``."""
    return ContractCall(
        to=multicall,
        signature='aggregate3((address,bool,bytes)[])',
        args=([(call.to, False, call.encode()) for call in calls],),
        output_types=('(bool,bytes)[]',),
    )


def compute_proxy_address(factory: str, owner: str, implementation: str) -> ContractCall:
    return ContractCall(
        to=factory,
        signature='computeProxyAddress(address,address)',
        args=(owner, implementation),
        output_types=('address',),
    )


# Unpacked reader structs, field order as returned by ``configInfo``
GLOBAL_UNPACKED_TYPE = '(address,bool,bool,uint256,uint256,bool,uint256,uint256)'
LOCAL_UNPACKED_TYPE = '(bool,uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,bool,uint256)'


def reader_config_info(reader: str, ol_key: Tuple[str, str, int]) -> ContractCall:
    """
    Read the exchange-wide and per-semibook configuration of ``ol_key``.

    Decodes to ``(global, local)``. ``global`` carries gasprice (Mwei),
    gasmax and dead at positions 3, 4 and 5. ``local`` carries active, fee,
    density at positions 0, 1 and 2, and the offer gasbase in thousands of
    gas units at position 8.
    """
    return ContractCall(
        to=reader,
        signature=f'configInfo({OL_KEY_TYPE})',
        args=(ol_key,),
        output_types=(GLOBAL_UNPACKED_TYPE, LOCAL_UNPACKED_TYPE),
    )


def ol_key_hash(outbound_tkn: str, inbound_tkn: str, tick_spacing: int) -> bytes:
    """Hash identifying one semibook, as used in indexed event topics."""
    return keccak(encode(['address', 'address', 'uint256'], [outbound_tkn, inbound_tkn, tick_spacing]))


# ==================== Events ====================

@dataclass(frozen=True)
class EventSpec:
    """
    Event layout: indexed fields first, then the data fields.

    Every event used here declares its indexed parameters before the
    non-indexed ones, so the canonical signature is the concatenation.
    """
    name: str
    indexed: Tuple[Tuple[str, str], ...]
    data: Tuple[Tuple[str, str], ...]

    @property
    def signature(self) -> str:
        types = [t for _, t in self.indexed] + [t for _, t in self.data]
        return f"{self.name}({','.join(types)})"

    @property
    def topic(self) -> bytes:
        return keccak(text=self.signature)


ORDER_START = EventSpec(
    'OrderStart',
    (('olKeyHash', 'bytes32'), ('taker', 'address')),
    (('maxTick', 'int256'), ('fillVolume', 'uint256'), ('fillWants', 'bool')),
)
ORDER_COMPLETE = EventSpec(
    'OrderComplete',
    (('olKeyHash', 'bytes32'), ('taker', 'address')),
    (('fee', 'uint256'),),
)
OFFER_SUCCESS = EventSpec(
    'OfferSuccess',
    (('olKeyHash', 'bytes32'), ('taker', 'address'), ('id', 'uint256')),
    (('takerWants', 'uint256'), ('takerGives', 'uint256')),
)
OFFER_FAIL = EventSpec(
    'OfferFail',
    (('olKeyHash', 'bytes32'), ('taker', 'address'), ('id', 'uint256')),
    (('takerWants', 'uint256'), ('takerGives', 'uint256'), ('penalty', 'uint256'), ('mgvData', 'bytes32')),
)
OFFER_WRITE = EventSpec(
    'OfferWrite',
    (('olKeyHash', 'bytes32'), ('maker', 'address')),
    (('tick', 'int256'), ('gives', 'uint256'), ('gasprice', 'uint256'), ('gasreq', 'uint256'), ('id', 'uint256')),
)
OFFER_RETRACT = EventSpec(
    'OfferRetract',
    (('olKeyHash', 'bytes32'), ('maker', 'address')),
    (('id', 'uint256'), ('deprovision', 'bool')),
)
MANGROVE_ORDER_START = EventSpec(
    'MangroveOrderStart',
    (('olKeyHash', 'bytes32'), ('taker', 'address')),
    (
        ('tick', 'int256'), ('orderType', 'uint8'), ('fillVolume', 'uint256'), ('fillWants', 'bool'),
        ('offerId', 'uint256'), ('takerGivesLogic', 'address'), ('takerWantsLogic', 'address'),
    ),
)
SET_RENEGING = EventSpec(
    'SetReneging',
    (('olKeyHash', 'bytes32'), ('offerId', 'uint256')),
    (('date', 'uint256'), ('volume', 'uint256')),
)


def _normalize(value: Any, abi_type: str) -> Any:
    if abi_type == 'address':
        return to_checksum_address(value)
    return value


def decode_event(event: EventSpec, log: LogEntry) -> Dict[str, Any]:
    """
    Decode a log known to match ``event``.

    Args:
        event: Event layout.
        log: Log entry whose topic0 equals ``event.topic``.

    Returns:
        Mapping of field name to decoded value; addresses are checksummed.
    """
    if log.topic0 != event.topic or len(log.topics) != len(event.indexed) + 1:
        raise ValueError(f"Log does not match event {event.name}")

    values: Dict[str, Any] = {}
    for (name, abi_type), topic in zip(event.indexed, log.topics[1:]):
        values[name] = _normalize(decode([abi_type], topic)[0], abi_type)

    data_types = [t for _, t in event.data]
    for (name, abi_type), value in zip(event.data, decode(data_types, log.data)):
        values[name] = _normalize(value, abi_type)
    return values


def encode_event(event: EventSpec, address: str, **values: Any) -> LogEntry:
    """Build the log entry a contract would emit for ``event`` with ``values``."""
    topics = [event.topic]
    for name, abi_type in event.indexed:
        topics.append(encode([abi_type], [values[name]]))
    data = encode([t for _, t in event.data], [values[name] for name, _ in event.data])
    return LogEntry(address=to_checksum_address(address), topics=tuple(topics), data=data)


def iter_events(event: EventSpec, logs: Sequence[LogEntry], address: str):
    """Yield the decoded ``event`` logs emitted by ``address``."""
    emitter = to_checksum_address(address)
    for log in logs:
        if log.address == emitter and log.topic0 == event.topic:
            yield decode_event(event, log)
