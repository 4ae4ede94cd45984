"""
Durable local storage for the offline access service.

One SQLite file holds the cache, the sync queue, the sync log and the
known sites so that all of them survive process restarts on the device.
"""

from .local_db import LocalDatabase

__all__ = ["LocalDatabase"]
