"""Test configuration and utilities for the Circles redeemer."""

import logging
import sys

# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Suppress noisy logs during testing
logging.getLogger('aiohttp').setLevel(logging.WARNING)

# Test addresses for consistent testing
TEST_ADDRESSES = {
    'subscriber': '0x1111111111111111111111111111111111111111',
    'recipient': '0x2222222222222222222222222222222222222222',
    'token': '0x3333333333333333333333333333333333333333',
    'module': '0x4444444444444444444444444444444444444444',
    'subscription_manager': '0x7E9BaF7CC7cD83bACeFB9B2D5c5124C0F9c30834',
    'invalid': '0xinvalid'
}
