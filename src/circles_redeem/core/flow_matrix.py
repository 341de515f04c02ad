"""Flow matrix construction for the hub's flow-matrix settlement functions."""

import logging
from typing import List, Dict, Tuple, Any, Sequence

from .types import (
    TransferStep,
    FlowEdge,
    Stream,
    FlowMatrix,
    canonical_address,
    parse_amount,
)
from .exceptions import FlowMatrixError, FlowMismatchError, VertexOverflowError

logger = logging.getLogger(__name__)

# Coordinates are uint16 on chain.
MAX_FLOW_VERTICES = 1 << 16


def pack_coordinates(coords: Sequence[int]) -> str:
    """
    Pack a uint16 array into a hex string (big-endian, no padding).

    Args:
        coords: List of coordinate integers

    Returns:
        Packed coordinates as a 0x-prefixed lowercase hex string
    """
    result = bytearray(len(coords) * 2)

    for i, coord in enumerate(coords):
        if not 0 <= coord < MAX_FLOW_VERTICES:
            raise FlowMatrixError(f"Coordinate {coord} does not fit in uint16")
        offset = 2 * i
        result[offset] = (coord >> 8) & 0xFF
        result[offset + 1] = coord & 0xFF

    return '0x' + result.hex()


def unpack_coordinates(packed: str) -> List[int]:
    """Inverse of pack_coordinates."""
    data = bytes.fromhex(packed[2:] if packed.startswith('0x') else packed)
    if len(data) % 2:
        raise FlowMatrixError(f"Packed coordinates have odd length {len(data)}")
    return [(data[i] << 8) | data[i + 1] for i in range(0, len(data), 2)]


def transform_to_flow_vertices(
    transfers: Sequence[TransferStep],
    from_addr: str,
    to_addr: str
) -> Tuple[List[str], Dict[str, int]]:
    """
    Build a sorted vertex list plus index lookup for quick coordinate mapping.

    Args:
        transfers: List of transfer steps
        from_addr: Source address
        to_addr: Destination address

    Returns:
        Tuple of (sorted vertex list, address to index mapping)

    Raises:
        VertexOverflowError: If the vertices cannot all be given a uint16 coordinate
    """
    addresses = {canonical_address(from_addr, 'from_addr'), canonical_address(to_addr, 'to_addr')}

    for transfer in transfers:
        addresses.add(canonical_address(transfer.from_address))
        addresses.add(canonical_address(transfer.to_address))
        addresses.add(canonical_address(transfer.token_owner))

    if len(addresses) > MAX_FLOW_VERTICES:
        raise VertexOverflowError(len(addresses), MAX_FLOW_VERTICES)

    # Canonical addresses are fixed width, but sort on the number itself
    sorted_addresses = sorted(addresses, key=lambda addr: int(addr, 16))

    idx = {addr: i for i, addr in enumerate(sorted_addresses)}

    return sorted_addresses, idx


def _terminal_flags(receivers: List[str], receiver: str) -> List[bool]:
    flags = [to == receiver for to in receivers]
    if any(flags):
        return flags

    # No edge ends at the sink, so there is no "last edge to the sink" either.
    # The settlement contract still needs a terminal edge: promote the last one.
    index = len(receivers) - 1
    logger.warning(
        f"Path does not reach sink {receiver}; promoting last edge {index} "
        f"(to {receivers[index]}) to terminal unconditionally"
    )
    flags[index] = True
    return flags


def create_flow_matrix(
    from_addr: str,
    to_addr: str,
    value: str,
    transfers: Sequence[TransferStep]
) -> FlowMatrix:
    """
    Create an ABI-ready FlowMatrix object from a list of TransferSteps.

    The result is a pure function of the arguments: vertices are sorted by
    numeric address, edges keep the order of ``transfers`` and one stream
    credits every edge that ends at ``to_addr``.

    Args:
        from_addr: Source address
        to_addr: Destination address
        value: Expected total value delivered to the destination
        transfers: List of transfer steps

    Returns:
        FlowMatrix object ready for ABI encoding

    Raises:
        InvalidAddressError: If any address is malformed
        InvalidAmountError: If value or a transfer value is not a decimal integer
        VertexOverflowError: If there are more than 65536 distinct vertices
        FlowMismatchError: If the terminal sum doesn't equal the expected value
        FlowMatrixError: If there are no transfers at all
    """
    expected = parse_amount(value, 'value')
    amounts = [parse_amount(t.value, 'transfer value') for t in transfers]

    sender = canonical_address(from_addr, 'from_addr')
    receiver = canonical_address(to_addr, 'to_addr')

    flow_vertices, idx = transform_to_flow_vertices(transfers, sender, receiver)

    if not transfers:
        raise FlowMatrixError(
            "Cannot build a flow matrix without transfers",
            details={'from_addr': sender, 'to_addr': receiver, 'value': value}
        )

    receivers = [canonical_address(t.to_address) for t in transfers]
    terminal = _terminal_flags(receivers, receiver)

    flow_edges = [
        FlowEdge(stream_sink_id=1 if is_terminal else 0, amount=str(amount))
        for is_terminal, amount in zip(terminal, amounts)
    ]

    terminal_sum = sum(amount for is_terminal, amount in zip(terminal, amounts) if is_terminal)
    if terminal_sum != expected:
        raise FlowMismatchError(terminal_sum, expected)

    streams = [Stream(
        source_coordinate=idx[sender],
        flow_edge_ids=[i for i, is_terminal in enumerate(terminal) if is_terminal],
        data=b''
    )]

    coords = []
    for transfer in transfers:
        coords.append(idx[canonical_address(transfer.token_owner)])
        coords.append(idx[canonical_address(transfer.from_address)])
        coords.append(idx[canonical_address(transfer.to_address)])

    packed_coordinates = pack_coordinates(coords)

    logger.debug(
        f"Built flow matrix: {len(flow_vertices)} vertices, {len(flow_edges)} edges, "
        f"{len(streams[0].flow_edge_ids)} terminal"
    )

    return FlowMatrix(
        flow_vertices=flow_vertices,
        flow_edges=flow_edges,
        streams=streams,
        packed_coordinates=packed_coordinates,
        source_coordinate=idx[sender]
    )


def flow_matrix_to_abi(flow_matrix: FlowMatrix) -> Dict[str, Any]:
    """
    Convert a FlowMatrix object to the hub's ABI-compatible argument shape.

    Args:
        flow_matrix: FlowMatrix object to convert

    Returns:
        Dictionary with ABI-compatible flow matrix parameters
    """
    # (uint16 streamSinkId, uint192 amount)
    flow_edges_abi = []
    for edge in flow_matrix.flow_edges:
        flow_edges_abi.append({
            'streamSinkId': edge.stream_sink_id,
            'amount': int(edge.amount)
        })

    # (uint16 sourceCoordinate, uint16[] flowEdgeIds, bytes data)
    streams_abi = []
    for stream in flow_matrix.streams:
        streams_abi.append({
            'sourceCoordinate': stream.source_coordinate,
            'flowEdgeIds': list(stream.flow_edge_ids),
            'data': stream.data
        })

    return {
        '_flowVertices': list(flow_matrix.flow_vertices),
        '_flow': flow_edges_abi,
        '_streams': streams_abi,
        '_packedCoordinates': flow_matrix.packed_coordinates_bytes
    }


def flow_matrix_to_abi_hex(flow_matrix: FlowMatrix) -> Dict[str, Any]:
    """
    Convert a FlowMatrix object to ABI-compatible format with hex-encoded bytes.

    This variant encodes bytes fields as hex strings, which is what JSON based
    signers expect.

    Args:
        flow_matrix: FlowMatrix object to convert

    Returns:
        Dictionary with ABI-compatible parameters (bytes as hex strings)
    """
    abi_data = flow_matrix_to_abi(flow_matrix)

    abi_data['_packedCoordinates'] = flow_matrix.packed_coordinates

    for stream in abi_data['_streams']:
        if isinstance(stream['data'], bytes):
            stream['data'] = '0x' + stream['data'].hex()

    return abi_data
