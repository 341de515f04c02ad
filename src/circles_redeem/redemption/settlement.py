"""Settlement call building for subscription redemptions."""

from typing import Dict, List, Tuple, Any
from dataclasses import dataclass
from abc import ABC, abstractmethod

from ..core.types import FlowMatrix, RedeemableSubscription, canonical_address
from ..core.config import RedeemConfig
from ..core.flow_matrix import flow_matrix_to_abi

REDEEM_FUNCTION = 'redeemPayment'


@dataclass(frozen=True)
class RedemptionCall:
    """A redeemPayment call on the subscription manager, ready to be signed."""
    to: str
    module: str
    sub_id: int
    flow_vertices: List[str]
    flow: List[Dict[str, int]]
    streams: List[Dict[str, Any]]
    packed_coordinates: bytes
    function: str = REDEEM_FUNCTION

    def args(self) -> Tuple[Any, ...]:
        """Positional arguments of redeemPayment, in contract order."""
        return (
            self.module,
            self.sub_id,
            self.flow_vertices,
            self.flow,
            self.streams,
            self.packed_coordinates,
        )


class Settler(ABC):
    """
    Signs and submits redemption calls.

    Implementations own keys, nonces, gas and receipts; this package only
    hands them a fully built call.
    """

    @abstractmethod
    async def submit(self, call: RedemptionCall) -> str:
        """Submit the call and return the transaction hash."""


def build_redemption_call(
    config: RedeemConfig,
    subscription: RedeemableSubscription,
    flow_matrix: FlowMatrix
) -> RedemptionCall:
    """
    Build the redeemPayment call for a subscription and its flow matrix.

    Args:
        config: Redeemer configuration carrying the subscription manager address
        subscription: Subscription being redeemed
        flow_matrix: Flow matrix paying the subscription amount

    Returns:
        RedemptionCall for the subscription manager
    """
    abi = flow_matrix_to_abi(flow_matrix)

    return RedemptionCall(
        to=canonical_address(config.subscription_manager_address, 'subscription_manager_address'),
        module=subscription.module,
        sub_id=int(subscription.sub_id),
        flow_vertices=abi['_flowVertices'],
        flow=abi['_flow'],
        streams=abi['_streams'],
        packed_coordinates=abi['_packedCoordinates']
    )
