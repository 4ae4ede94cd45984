"""
Integration layer that decides when replay runs happen.
"""

import asyncio
from typing import Dict, List, Optional

from shared.logging import get_logger
from ..domain.models import Site, SyncReport
from ..sites import SiteRegistry
from .runner import SyncRunner


class SyncScheduler:
    """Serialises replay runs per site and triggers them on demand, on reconnect or periodically."""

    def __init__(self, runner: SyncRunner, sites: SiteRegistry, interval_seconds: Optional[float] = None):
        self.runner = runner
        self.sites = sites
        self.interval_seconds = interval_seconds
        self.logger = get_logger("sync.scheduler")
        self._locks: Dict[str, asyncio.Lock] = {}
        self._task: Optional[asyncio.Task] = None

    def _lock_for(self, site_id: str) -> asyncio.Lock:
        if site_id not in self._locks:
            self._locks[site_id] = asyncio.Lock()
        return self._locks[site_id]

    def is_running(self, site_id: str) -> bool:
        return self._lock_for(site_id).locked()

    async def run_site(self, site: Site) -> Optional[SyncReport]:
        """Run one site; returns None when a run for it is already in progress."""
        lock = self._lock_for(site.id)
        if lock.locked():
            self.logger.info("Sync already running, request skipped", site_id=site.id)
            return None
        async with lock:
            return await self.runner.run(site)

    async def run_all(self) -> List[SyncReport]:
        reports: List[SyncReport] = []
        for site in await self.sites.list():
            report = await self.run_site(site)
            if report is not None:
                reports.append(report)
        return reports

    async def on_connectivity_regained(self) -> None:
        """Listener for offline -> online transitions."""
        self.logger.info("Connectivity regained, replaying queues")
        await self.run_all()

    def start(self) -> None:
        """Start the periodic background sync, if an interval is configured."""
        if not self.interval_seconds or self._task is not None:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_all()
            except Exception as exc:
                self.logger.error("Periodic sync failed", error=str(exc), exc_info=True)
