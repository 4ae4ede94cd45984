"""
Synchronization package: durable queue, replay runner, sync log, scheduling.
"""

from .log import SyncLog
from .queue import SyncQueue
from .runner import SyncRunner, describe_entry
from .scheduler import SyncScheduler

__all__ = ["SyncLog", "SyncQueue", "SyncRunner", "SyncScheduler", "describe_entry"]
