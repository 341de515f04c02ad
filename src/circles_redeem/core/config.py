"""Configuration management for the Circles redeemer."""

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class RedeemConfig:
    """Configuration for the Circles redeemer."""
    pathfinder_url: str
    feed_url: str
    subscription_manager_address: str
    request_timeout: Optional[float] = None
    use_wrapped_balances: bool = True

    @classmethod
    def from_env(cls) -> 'RedeemConfig':
        """Load configuration from environment variables."""
        timeout = os.environ.get('REQUEST_TIMEOUT')
        try:
            request_timeout = float(timeout) if timeout else None
        except ValueError:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a number: {timeout}",
                details={'REQUEST_TIMEOUT': timeout}
            )

        return cls(
            pathfinder_url=os.environ.get('CIRCLES_PATHFINDER_URL', 'https://rpc.aboutcircles.com/'),
            feed_url=os.environ.get('REDEEMABLE_FEED_URL', 'https://subindexer-api.fly.dev/redeemable'),
            subscription_manager_address=os.environ.get(
                'SUBSCRIPTION_MANAGER_ADDRESS',
                '0x7E9BaF7CC7cD83bACeFB9B2D5c5124C0F9c30834'
            ),
            request_timeout=request_timeout,
            use_wrapped_balances=_env_flag('USE_WRAPPED_BALANCES', True)
        )

    @classmethod
    def mainnet(cls) -> 'RedeemConfig':
        """Gnosis Chain production configuration."""
        return cls(
            pathfinder_url="https://rpc.aboutcircles.com/",
            feed_url="https://subindexer-api.fly.dev/redeemable",
            subscription_manager_address="0x7E9BaF7CC7cD83bACeFB9B2D5c5124C0F9c30834"
        )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigurationError(f"{name} must be a boolean flag: {raw}", details={name: raw})
