"""
Circles redeemer for Python

Turns due subscription payments into contract-ready flow matrices for the
Circles protocol: pathfinder RPC client, flow matrix construction and the
redeemPayment call shape.
"""

__version__ = "0.1.0"

# Core configuration and types
from .core.config import RedeemConfig
from .core.types import (
    TransferStep,
    PathfindingResult,
    FindPathParams,
    FlowMatrix,
    FlowEdge,
    Stream,
    RedeemableSubscription,
)

# Clients
from .pathfinding.client import PathfinderClient
from .feed.client import SubscriptionFeedClient

# Flow matrix functionality
from .core.flow_matrix import (
    create_flow_matrix,
    flow_matrix_to_abi,
    flow_matrix_to_abi_hex,
)

# Redemption
from .redemption import (
    RedemptionCall,
    Settler,
    build_redemption_call,
    Redeemer,
    RedemptionResult,
    redeem_pending,
)

# Exceptions
from .core.exceptions import (
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

__all__ = [
    "__version__",

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

    # Clients
    "PathfinderClient",
    "SubscriptionFeedClient",

    # Flow matrix
    "create_flow_matrix",
    "flow_matrix_to_abi",
    "flow_matrix_to_abi_hex",

    # Redemption
    "RedemptionCall",
    "Settler",
    "build_redemption_call",
    "Redeemer",
    "RedemptionResult",
    "redeem_pending",

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
]
