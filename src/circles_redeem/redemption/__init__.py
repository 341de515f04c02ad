"""Redemption of subscription payments."""

from .settlement import (
    REDEEM_FUNCTION,
    RedemptionCall,
    Settler,
    build_redemption_call,
)
from .redeemer import Redeemer, RedemptionResult, redeem_pending

__all__ = [
    "REDEEM_FUNCTION",
    "RedemptionCall",
    "Settler",
    "build_redemption_call",
    "Redeemer",
    "RedemptionResult",
    "redeem_pending",
]
