"""
Call-dispatch engine.

Every remote call resolves through exactly one path: the cache, a network
round trip, or the sync queue.
"""

from .dispatcher import Gateway

__all__ = ["Gateway"]
