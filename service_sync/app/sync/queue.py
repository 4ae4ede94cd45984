"""
Durable ordered store of pending operations.
"""

from typing import Any, List, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..storage.local_db import LocalDatabase


class SyncQueue:
    """Insertion-ordered queue of deferred operations, filterable by site."""

    def __init__(self, database: LocalDatabase, metrics: Optional[MetricsCollector] = None):
        self.database = database
        self.metrics = metrics
        self.logger = get_logger("sync.queue")

    async def enqueue(self, entry: Any) -> int:
        """Append ``entry``; the returned id defines its replay position."""
        entry_id = await self.database.insert_queue_entry(entry)
        self.logger.info("Operation queued", entry_id=entry_id, kind=entry.kind, site_id=entry.site_id)
        await self._update_depth(entry.site_id)
        return entry_id

    async def list(self, site_id: str) -> List[Any]:
        """Entries of ``site_id`` in insertion order."""
        return await self.database.list_queue_entries(site_id)

    async def get(self, entry_id: int) -> Optional[Any]:
        return await self.database.get_queue_entry(entry_id)

    async def remove(self, entry_id: int) -> bool:
        entry = await self.database.get_queue_entry(entry_id)
        removed = await self.database.delete_queue_entry(entry_id)
        if removed and entry is not None:
            await self._update_depth(entry.site_id)
        return removed

    async def count(self, site_id: Optional[str] = None) -> int:
        return await self.database.count_queue_entries(site_id)

    async def _update_depth(self, site_id: str) -> None:
        if not self.metrics:
            return
        self.metrics.set_gauge("sync_queue_depth", await self.count(site_id), site_id=site_id)
