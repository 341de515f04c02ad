"""Core type definitions for the Circles redeemer."""

import re
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, validator, root_validator

from .exceptions import InvalidAddressError, InvalidAmountError

_ADDRESS_RE = re.compile(r'0[xX]([0-9a-fA-F]{1,40})')
_AMOUNT_RE = re.compile(r'[0-9]+')


def canonical_address(value: Any, field: str = 'address') -> str:
    """
    Canonical comparison form of an address.

    Lowercase, ``0x`` prefixed and left-padded to 20 bytes, so that two
    spellings of the same account compare and hash equal.

    Raises:
        InvalidAddressError: If value is not a hex address of at most 20 bytes
    """
    match = _ADDRESS_RE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise InvalidAddressError(f"Invalid address for {field}: {value!r}", field=field, value=value)
    return '0x' + match.group(1).lower().rjust(40, '0')


def address_value(address: str) -> int:
    """Big-endian numeric value of an address, used for vertex ordering."""
    return int(canonical_address(address), 16)


def parse_amount(value: Any, field: str = 'amount') -> int:
    """
    Parse a decimal amount string into an exact integer.

    Raises:
        InvalidAmountError: If value is not a non-negative decimal integer string
    """
    if not isinstance(value, str) or not _AMOUNT_RE.fullmatch(value):
        raise InvalidAmountError(
            f"{field} must be a non-negative decimal integer string: {value!r}",
            field=field,
            value=value
        )
    return int(value)


def _address_field(v, field):
    try:
        return canonical_address(v, field)
    except InvalidAddressError as e:
        raise ValueError(e.message)


def _amount_field(v, field, positive=False):
    try:
        amount = parse_amount(v, field)
    except InvalidAmountError as e:
        raise ValueError(e.message)
    if positive and amount == 0:
        raise ValueError(f'{field} must be positive: {v}')
    return v


class TransferStep(BaseModel):
    """Represents a single transfer step in a payment flow."""
    from_address: str
    to_address: str
    token_owner: str
    value: str

    class Config:
        frozen = True

    @validator('from_address', 'to_address', 'token_owner')
    def validate_address(cls, v):
        return _address_field(v, 'transfer address')

    @validator('value')
    def validate_value(cls, v):
        return _amount_field(v, 'value')

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> 'TransferStep':
        """Build from the pathfinder wire shape (from/to/tokenOwner/value)."""
        return cls(
            from_address=data['from'],
            to_address=data['to'],
            token_owner=data['tokenOwner'],
            value=data['value']
        )


class PathfindingResult(BaseModel):
    """Result from pathfinder RPC call."""
    max_flow: str
    transfers: List[TransferStep]

    class Config:
        frozen = True

    @validator('max_flow')
    def validate_max_flow(cls, v):
        return _amount_field(v, 'max_flow')


class FindPathParams(BaseModel):
    """Parameters for pathfinding operations.

    ``None`` for any of the optional fields means no restriction.
    """
    from_addr: str
    to_addr: str
    target_flow: str
    use_wrapped_balances: Optional[bool] = None
    from_tokens: Optional[List[str]] = None
    to_tokens: Optional[List[str]] = None
    exclude_from_tokens: Optional[List[str]] = None
    exclude_to_tokens: Optional[List[str]] = None

    class Config:
        frozen = True

    @validator('from_addr', 'to_addr')
    def validate_address(cls, v):
        return _address_field(v, 'address')

    @validator('target_flow')
    def validate_target_flow(cls, v):
        return _amount_field(v, 'target_flow', positive=True)

    @validator('from_tokens', 'to_tokens', 'exclude_from_tokens', 'exclude_to_tokens')
    def validate_token_sets(cls, v):
        if v is None:
            return v
        tokens = []
        for addr in v:
            token = _address_field(addr, 'token')
            if token not in tokens:
                tokens.append(token)
        return tokens


@dataclass(frozen=True)
class FlowEdge:
    """Represents an edge in the flow graph."""
    stream_sink_id: int
    amount: str


@dataclass(frozen=True)
class Stream:
    """Represents a stream in the flow matrix."""
    source_coordinate: int
    flow_edge_ids: List[int]
    data: bytes = b''


@dataclass(frozen=True)
class FlowMatrix:
    """Complete flow matrix for ABI encoding."""
    flow_vertices: List[str]
    flow_edges: List[FlowEdge]
    streams: List[Stream]
    packed_coordinates: str
    source_coordinate: int

    @property
    def packed_coordinates_bytes(self) -> bytes:
        return bytes.fromhex(self.packed_coordinates[2:])


class RedeemableSubscription(BaseModel):
    """A subscription payment that is due and can be redeemed."""
    recipient: str
    subscriber: str
    amount: str
    module: str
    sub_id: str

    class Config:
        frozen = True

    @root_validator(pre=True)
    def accept_feed_aliases(cls, values):
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if 'module' not in values and 'moduleId' in values:
            values['module'] = values.pop('moduleId')
        for alias in ('subscriptionId', 'subId'):
            if 'sub_id' not in values and alias in values:
                values['sub_id'] = values.pop(alias)
        return values

    @validator('recipient', 'subscriber', 'module')
    def validate_address(cls, v):
        return _address_field(v, 'subscription address')

    @validator('amount')
    def validate_amount(cls, v):
        return _amount_field(v, 'amount', positive=True)

    @validator('sub_id', pre=True)
    def validate_sub_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        return _amount_field(v, 'sub_id')


class RPCRequest(BaseModel):
    """JSON-RPC request structure."""
    jsonrpc: str = "2.0"
    id: Union[str, int] = 1
    method: str
    params: List[Any]


class RPCResponse(BaseModel):
    """JSON-RPC response structure."""
    jsonrpc: Optional[str] = None
    id: Optional[Union[str, int]] = None
    result: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None


class RPCErrorPayload(BaseModel):
    """JSON-RPC error structure."""
    code: int
    message: str
    data: Optional[Any] = None
