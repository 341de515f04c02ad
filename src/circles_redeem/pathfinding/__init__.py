"""
Pathfinding module for the Circles redeemer.

This module provides the RPC client for the Circles pathfinder service.
"""

from .client import PathfinderClient, FIND_PATH_METHOD

__all__ = [
    "PathfinderClient",
    "FIND_PATH_METHOD",
]
