"""
Core module for the Circles redeemer.

This module contains the fundamental types, configuration, exceptions,
and flow matrix functionality that the clients and the redeemer build on.
"""

from .config import RedeemConfig
from .types import (
    TransferStep,
    PathfindingResult,
    FindPathParams,
    FlowMatrix,
    FlowEdge,
    Stream,
    RedeemableSubscription,
    RPCRequest,
    RPCResponse,
    RPCErrorPayload,
    canonical_address,
    address_value,
    parse_amount,
)
from .exceptions import (
    CirclesRedeemError,
    ConfigurationError,
    ValidationError,
    InvalidAddressError,
    InvalidAmountError,
    PathfindingError,
    TransportError,
    RPCError,
    MalformedResponseError,
    FlowMatrixError,
    VertexOverflowError,
    FlowMismatchError,
    SettlementError,
)
from .flow_matrix import (
    MAX_FLOW_VERTICES,
    create_flow_matrix,
    flow_matrix_to_abi,
    flow_matrix_to_abi_hex,
    pack_coordinates,
    unpack_coordinates,
    transform_to_flow_vertices,
)

__all__ = [
    # Configuration
    "RedeemConfig",

    # Core types
    "TransferStep",
    "PathfindingResult",
    "FindPathParams",
    "FlowMatrix",
    "FlowEdge",
    "Stream",
    "RedeemableSubscription",
    "RPCRequest",
    "RPCResponse",
    "RPCErrorPayload",
    "canonical_address",
    "address_value",
    "parse_amount",

    # Exceptions
    "CirclesRedeemError",
    "ConfigurationError",
    "ValidationError",
    "InvalidAddressError",
    "InvalidAmountError",
    "PathfindingError",
    "TransportError",
    "RPCError",
    "MalformedResponseError",
    "FlowMatrixError",
    "VertexOverflowError",
    "FlowMismatchError",
    "SettlementError",

    # Flow matrix functionality
    "MAX_FLOW_VERTICES",
    "create_flow_matrix",
    "flow_matrix_to_abi",
    "flow_matrix_to_abi_hex",
    "pack_coordinates",
    "unpack_coordinates",
    "transform_to_flow_vertices",
]
