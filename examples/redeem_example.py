#!/usr/bin/env python3
"""
Redemption planning example

Fetches the due subscription payments, asks the pathfinder for a path for
each one and prints the resulting flow matrix and redeemPayment arguments.
Nothing is signed: the settler below only logs the call it receives.

Requirements:
- Set environment variables for configuration (see RedeemConfig.from_env)
- Network access to the feed and pathfinder services
"""

import asyncio
import logging

from circles_redeem import (
    RedeemConfig,
    Redeemer,
    RedemptionCall,
    Settler,
    flow_matrix_to_abi_hex,
)
from circles_redeem.core.exceptions import CirclesRedeemError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class DryRunSettler(Settler):
    """Logs the redemption call instead of submitting it."""

    async def submit(self, call: RedemptionCall) -> str:
        logger.info(f"Would call {call.function} on {call.to} with {len(call.flow)} edges")
        return "0x" + "00" * 32


async def main():
    config = RedeemConfig.from_env()

    async with Redeemer(config, DryRunSettler()) as redeemer:
        subscriptions = await redeemer.feed.fetch_redeemable()
        print(f"Found {len(subscriptions)} subscriptions")

        for subscription in subscriptions:
            try:
                flow_matrix = await redeemer.plan(subscription)
            except CirclesRedeemError as e:
                print(f"  {subscription.sub_id}: cannot redeem ({e})")
                continue

            abi = flow_matrix_to_abi_hex(flow_matrix)
            print(f"  {subscription.sub_id}: {len(flow_matrix.flow_vertices)} vertices, "
                  f"{len(flow_matrix.flow_edges)} edges")
            print(f"    _packedCoordinates: {abi['_packedCoordinates']}")

        results = await redeemer.redeem_all(subscriptions)
        print(f"Dry run redeemed {sum(r.succeeded for r in results)} of {len(results)}")


if __name__ == "__main__":
    asyncio.run(main())
