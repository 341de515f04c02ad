"""Feed of subscription payments that are due for redemption."""

from .client import SubscriptionFeedClient

__all__ = [
    "SubscriptionFeedClient",
]
