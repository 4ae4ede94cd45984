"""
Domain records for the offline access service.
"""

from .models import (
    CacheEntry,
    CallOptions,
    Deferred,
    DownloadEntry,
    Failed,
    Immediate,
    Outcome,
    QueueEntry,
    RemoteCallEntry,
    Site,
    SyncLogRecord,
    SyncReport,
    UploadEntry,
    queue_entry_adapter,
)

__all__ = [
    "CacheEntry",
    "CallOptions",
    "Deferred",
    "DownloadEntry",
    "Failed",
    "Immediate",
    "Outcome",
    "QueueEntry",
    "RemoteCallEntry",
    "Site",
    "SyncLogRecord",
    "SyncReport",
    "UploadEntry",
    "queue_entry_adapter",
]
