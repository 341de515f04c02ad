"""Redemption of due subscription payments through the pathfinder and flow matrix pipeline."""

import logging
from dataclasses import dataclass
from typing import Optional, List

from ..core.config import RedeemConfig
from ..core.types import FindPathParams, FlowMatrix, RedeemableSubscription
from ..core.flow_matrix import create_flow_matrix
from ..core.exceptions import CirclesRedeemError, SettlementError
from ..pathfinding.client import PathfinderClient
from ..feed.client import SubscriptionFeedClient
from .settlement import Settler, build_redemption_call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of one redemption attempt."""
    subscription: RedeemableSubscription
    tx_hash: Optional[str] = None
    error: Optional[CirclesRedeemError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class Redeemer:
    """Redeems subscription payments one attempt at a time."""

    def __init__(self, config: RedeemConfig, settler: Settler):
        """Initialize the redeemer.

        Args:
            config: Redeemer configuration
            settler: Facility that signs and submits the redemption calls
        """
        self.config = config
        self.settler = settler
        self.pathfinder = PathfinderClient(config)
        self.feed = SubscriptionFeedClient(config)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.pathfinder._ensure_session()
        await self.feed._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        try:
            await self.pathfinder.close()
        finally:
            await self.feed.close()

    async def plan(self, subscription: RedeemableSubscription) -> FlowMatrix:
        """Find a path paying the subscription and encode it as a flow matrix.

        Raises:
            PathfindingError: Pathfinding failed
            FlowMatrixError: The path cannot be settled for the subscription amount
        """
        params = FindPathParams(
            from_addr=subscription.subscriber,
            to_addr=subscription.recipient,
            target_flow=subscription.amount,
            use_wrapped_balances=self.config.use_wrapped_balances
        )
        path = await self.pathfinder.find_path(params)

        return create_flow_matrix(
            from_addr=subscription.subscriber,
            to_addr=subscription.recipient,
            value=subscription.amount,
            transfers=path.transfers
        )

    async def redeem(self, subscription: RedeemableSubscription) -> RedemptionResult:
        """Redeem a single subscription payment.

        Returns:
            RedemptionResult carrying the transaction hash

        Raises:
            PathfindingError: Pathfinding failed
            FlowMatrixError: Flow matrix could not be built
            SettlementError: The settler failed to submit the call
        """
        logger.info(
            f"Redeeming subscription {subscription.sub_id} of module {subscription.module}: "
            f"{subscription.subscriber} -> {subscription.recipient}, amount: {subscription.amount}"
        )

        flow_matrix = await self.plan(subscription)
        call = build_redemption_call(self.config, subscription, flow_matrix)

        try:
            tx_hash = await self.settler.submit(call)
        except SettlementError:
            raise
        except Exception as e:
            raise SettlementError(
                f"Failed to submit redemption of subscription {subscription.sub_id}: {e}",
                details={'module': subscription.module, 'sub_id': subscription.sub_id}
            ) from e

        logger.info(f"Redeemed {subscription.sub_id}-{subscription.module} at: {tx_hash}")
        return RedemptionResult(subscription=subscription, tx_hash=tx_hash)

    async def redeem_all(
        self,
        subscriptions: Optional[List[RedeemableSubscription]] = None
    ) -> List[RedemptionResult]:
        """Attempt every due subscription in order.

        A failed attempt is logged and recorded; it does not stop the others.

        Args:
            subscriptions: Subscriptions to redeem, fetched from the feed when omitted

        Returns:
            One RedemptionResult per subscription, in order
        """
        if subscriptions is None:
            subscriptions = await self.feed.fetch_redeemable()

        results = []
        for subscription in subscriptions:
            try:
                results.append(await self.redeem(subscription))
            except CirclesRedeemError as e:
                logger.error(f"Redemption of subscription {subscription.sub_id} failed: {e}")
                results.append(RedemptionResult(subscription=subscription, error=e))

        succeeded = sum(1 for result in results if result.succeeded)
        logger.info(f"Redeemed {succeeded} of {len(results)} subscriptions")
        return results


async def redeem_pending(config: RedeemConfig, settler: Settler) -> List[RedemptionResult]:
    """Convenience function: fetch the feed and redeem everything that is due.

    Args:
        config: Redeemer configuration
        settler: Facility that signs and submits the redemption calls

    Returns:
        One RedemptionResult per due subscription
    """
    async with Redeemer(config, settler) as redeemer:
        return await redeemer.redeem_all()
