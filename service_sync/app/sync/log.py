"""
Durable sync log.

Replay outcomes are the only trace of a queued operation that keeps
failing, so they are persisted next to the queue and capped at
``max_length`` lines.
"""

import time
from typing import Callable, List, Optional

from shared.logging import get_logger
from ..domain.models import SyncLogRecord
from ..storage.local_db import LocalDatabase


class SyncLog:
    """Bounded, persisted log of synchronization events."""

    def __init__(
        self,
        database: LocalDatabase,
        max_length: int = 500,
        dev_debug: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.database = database
        self.max_length = max_length
        self.dev_debug = dev_debug
        self.clock = clock
        self.logger = get_logger("sync.log")

    async def record(self, message: str, component: str = "Core") -> SyncLogRecord:
        """Persist one log line and mirror it to the structured log."""
        record = SyncLogRecord(created_at=self.clock(), component=component, message=message)
        record.id = await self.database.append_log(record, self.max_length)
        self.logger.info(message, component=component)
        return record

    async def debug(self, message: str, component: str = "Core") -> Optional[SyncLogRecord]:
        """Persist a diagnostic line only when developer debugging is on."""
        if not self.dev_debug:
            return None
        return await self.record(message, component)

    async def entries(self, limit: Optional[int] = None) -> List[SyncLogRecord]:
        """Newest first."""
        return await self.database.list_log(limit)

    async def formatted(self, filter_text: Optional[str] = None) -> str:
        """Render the log, collapsing consecutive duplicates and filtering by substring.

        Rendering is a developer tool; it yields an empty string unless
        ``dev_debug`` is on.
        """
        if not self.dev_debug:
            return ""
        lines: List[str] = []
        previous = None
        for record in await self.entries():
            line = record.format()
            if filter_text and filter_text not in line:
                continue
            if line == previous:
                continue
            previous = line
            lines.append(line)
        return "\n".join(lines)
