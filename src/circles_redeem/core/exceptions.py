"""Custom exceptions for the Circles redeemer."""

from typing import Optional, Any, Dict


class CirclesRedeemError(Exception):
    """Base exception for all Circles redeemer errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CirclesRedeemError):
    """Configuration is invalid or missing."""
    pass


class ValidationError(CirclesRedeemError):
    """Input validation failed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidAddressError(ValidationError):
    """Address is not a 0x-prefixed hex string of at most 20 bytes."""
    pass


class InvalidAmountError(ValidationError):
    """Amount is not a non-negative decimal integer string."""
    pass


class PathfindingError(CirclesRedeemError):
    """Pathfinding operation failed."""

    def __init__(
        self,
        message: str,
        from_addr: Optional[str] = None,
        to_addr: Optional[str] = None,
        amount: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.from_addr = from_addr
        self.to_addr = to_addr
        self.amount = amount


class TransportError(PathfindingError):
    """The service could not be reached or answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code


class RPCError(PathfindingError):
    """The service answered with a JSON-RPC error object."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        rpc_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        super().__init__(message, details=details, **kwargs)
        self.code = code
        self.rpc_message = rpc_message


class MalformedResponseError(PathfindingError):
    """The service answered, but with neither a usable result nor an error."""

    def __init__(
        self,
        message: str,
        response_data: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        super().__init__(message, details=details, **kwargs)
        self.response_data = response_data


class FlowMatrixError(CirclesRedeemError):
    """Flow matrix creation or validation failed."""
    pass


class VertexOverflowError(FlowMatrixError):
    """More distinct vertices than a uint16 coordinate can address."""

    def __init__(self, vertex_count: int, limit: int):
        super().__init__(
            f"Flow matrix has {vertex_count} vertices, at most {limit} are addressable",
            details={'vertex_count': vertex_count, 'limit': limit}
        )
        self.vertex_count = vertex_count
        self.limit = limit


class FlowMismatchError(FlowMatrixError):
    """Terminal edges do not deliver exactly the requested amount."""

    def __init__(self, terminal_sum: int, expected: int):
        super().__init__(
            f"Terminal sum {terminal_sum} does not equal expected {expected}",
            details={'terminal_sum': str(terminal_sum), 'expected': str(expected)}
        )
        self.terminal_sum = terminal_sum
        self.expected = expected


class SettlementError(CirclesRedeemError):
    """Submitting the redemption to the settlement facility failed."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.tx_hash = tx_hash
