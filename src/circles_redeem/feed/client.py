"""Client for the feed of redeemable subscription payments."""

import asyncio
import logging
from typing import List, Optional
import aiohttp
import pydantic
from aiohttp import ClientTimeout, ClientError

from ..core.config import RedeemConfig
from ..core.types import RedeemableSubscription
from ..core.exceptions import TransportError, MalformedResponseError

logger = logging.getLogger(__name__)


class SubscriptionFeedClient:
    """Async HTTP client for the redeemable subscriptions feed."""

    def __init__(self, config: RedeemConfig):
        """Initialize the feed client.

        Args:
            config: Redeemer configuration carrying the feed URL
        """
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure aiohttp session is created."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.config.request_timeout),
                headers={'User-Agent': 'circles-redeem-python/0.1.0'}
            )

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self._closed = True

    async def fetch_redeemable(self) -> List[RedeemableSubscription]:
        """Fetch the subscription payments that are currently due.

        Entries that do not parse as a subscription are logged and skipped,
        so one bad row does not hold back the others.

        Raises:
            TransportError: Feed unreachable or non-success HTTP status
            MalformedResponseError: Body is not a list
        """
        if self._closed:
            raise RuntimeError("Client has been closed")

        await self._ensure_session()
        url = self.config.feed_url

        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    raise TransportError(
                        f"Feed returned HTTP {response.status}",
                        status_code=response.status,
                        details={'url': url, 'body': error_text}
                    )
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(f"Failed to parse feed response: {e}", details={'url': url})
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to reach feed at {url}: {e!r}", details={'url': url}) from e

        if not isinstance(payload, list):
            raise MalformedResponseError("Feed response is not a list", response_data=payload)

        subscriptions = []
        for index, entry in enumerate(payload):
            try:
                subscriptions.append(RedeemableSubscription(**entry))
            except (TypeError, pydantic.ValidationError) as e:
                logger.warning(f"Skipping invalid feed entry {index}: {e}")

        skipped = len(payload) - len(subscriptions)
        logger.info(f"Found {len(subscriptions)} redeemable subscriptions ({skipped} skipped)")
        return subscriptions
