"""
Queue replay.
"""

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from shared.errors import AccessLayerException
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..connectivity.monitor import ConnectivityMonitor
from ..domain.models import DownloadEntry, RemoteCallEntry, Site, SyncReport, UploadEntry
from .log import SyncLog
from .queue import SyncQueue

if TYPE_CHECKING:
    from ..gateway.dispatcher import Gateway


def describe_entry(entry: Any) -> str:
    """Short human-readable label used in sync log lines."""
    if isinstance(entry, RemoteCallEntry):
        return f"#{entry.id} call {entry.method}"
    if isinstance(entry, UploadEntry):
        return f"#{entry.id} upload {entry.local_path}"
    if isinstance(entry, DownloadEntry):
        return f"#{entry.id} download {entry.url}"
    return f"#{getattr(entry, 'id', '?')} {type(entry).__name__}"


class SyncRunner:
    """Replays a site's queued operations in insertion order."""

    def __init__(
        self,
        gateway: "Gateway",
        queue: SyncQueue,
        connectivity: ConnectivityMonitor,
        sync_log: SyncLog,
        *,
        sync_enabled: bool = True,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.gateway = gateway
        self.queue = queue
        self.connectivity = connectivity
        self.sync_log = sync_log
        self.sync_enabled = sync_enabled
        self.metrics = metrics
        self.logger = get_logger("sync.runner")

    async def run(self, site: Site) -> SyncReport:
        """Replay every pending entry of ``site``.

        Disabled sync or missing connectivity ends the run without touching
        the queue. A failing entry stays queued, unchanged, and the run moves
        on to the next one.
        """
        if not self.sync_enabled:
            self.logger.warning("Sync process is disabled", site_id=site.id)
            return SyncReport(site_id=site.id, skipped_reason="disabled")

        if not self.connectivity.is_connected():
            self.logger.info("Sync skipped, device offline", site_id=site.id)
            return SyncReport(site_id=site.id, skipped_reason="offline")

        report = SyncReport(site_id=site.id)
        for entry in await self.queue.list(site.id):
            label = describe_entry(entry)
            try:
                await self._replay(entry, site)
            except AccessLayerException as exc:
                report.failed.append(entry.id)
                self._count(entry.kind, "failure")
                await self.sync_log.record(f"{site.id}: {label} failed: {exc.message}", component="Sync")
                continue
            except Exception as exc:
                report.failed.append(entry.id)
                self._count(entry.kind, "error")
                self.logger.error("Unexpected replay error", entry_id=entry.id, error=str(exc), exc_info=True)
                await self.sync_log.record(f"{site.id}: {label} failed: {exc}", component="Sync")
                continue

            await self.queue.remove(entry.id)
            report.succeeded.append(entry.id)
            self._count(entry.kind, "success")
            await self.sync_log.record(f"{site.id}: {label} synchronized", component="Sync")

        self.logger.info(
            "Sync run completed",
            site_id=site.id,
            succeeded=len(report.succeeded),
            failed=len(report.failed),
        )
        return report

    async def run_all(self, sites: Iterable[Site]) -> List[SyncReport]:
        """Replay sites one after another; sites are never interleaved."""
        return [await self.run(site) for site in sites]

    async def _replay(self, entry: Any, site: Site) -> None:
        if isinstance(entry, RemoteCallEntry):
            await self.gateway.dispatch(entry.method, entry.params, site)
        elif isinstance(entry, UploadEntry):
            await self.gateway.send_upload(entry.local_path, entry.remote_target, site)
        elif isinstance(entry, DownloadEntry):
            await self.gateway.fetch_download(
                entry.url, entry.destination, site, entry.resource_key, entry.component
            )
        else:
            raise TypeError(f"Unsupported queue entry kind: {getattr(entry, 'kind', type(entry).__name__)}")

    def _count(self, kind: str, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("sync_replays_total", kind=kind, result=result)
