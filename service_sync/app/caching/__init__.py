"""
Client cache package.

Provides the CacheStore used by the gateway to answer reads without the
network, plus its storage backends. Expiry is evaluated by the store at
read time so stale values stay available for forced reads.
"""

from .cache_store import MISSING, CacheStore, cache_key_for
from .backends import CacheBackend, RedisCacheBackend, SQLiteCacheBackend

__all__ = [
    "MISSING",
    "CacheStore",
    "cache_key_for",
    "CacheBackend",
    "RedisCacheBackend",
    "SQLiteCacheBackend",
]
