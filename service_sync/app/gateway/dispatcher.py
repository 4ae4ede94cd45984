"""
Gateway: decides between cache hit, network call and deferral.
"""

import time
from typing import Any, Callable, Dict, Optional

from shared.errors import AccessLayerException, OfflineError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..adapters.file_transfer import FileTransferClient
from ..adapters.ws_client import WebServiceClient
from ..caching.cache_store import MISSING, CacheStore, cache_key_for
from ..connectivity.monitor import ConnectivityMonitor
from ..domain.models import (
    CallOptions,
    Deferred,
    DownloadEntry,
    Failed,
    Immediate,
    Outcome,
    RemoteCallEntry,
    Site,
    UploadEntry,
)
from ..sync.queue import SyncQueue

ErrorReporter = Callable[[AccessLayerException], None]


class Gateway:
    """Front door for remote calls made by the client."""

    def __init__(
        self,
        cache: CacheStore,
        queue: SyncQueue,
        connectivity: ConnectivityMonitor,
        transport: WebServiceClient,
        file_transfer: Optional[FileTransferClient] = None,
        *,
        default_ttl: Optional[float] = 3600.0,
        error_reporter: Optional[ErrorReporter] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.queue = queue
        self.connectivity = connectivity
        self.transport = transport
        self.file_transfer = file_transfer
        self.default_ttl = default_ttl
        self.error_reporter = error_reporter
        self.metrics = metrics
        self.logger = get_logger("sync.gateway")

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]],
        site: Site,
        options: Optional[CallOptions] = None,
    ) -> Outcome:
        """Resolve a remote call from cache, network or queue.

        A fresh cache hit never touches the network. Offline queueable calls
        are deferred without touching the cache. Online successes refresh the
        cache when ``options.cache`` is set.
        """
        options = options or CallOptions()
        params = dict(params or {})
        key = cache_key_for(method, params, options.component)

        if options.cache:
            cached = await self.cache.get(key, force_cache=options.omit_expires, site_id=site.id)
            if cached is not MISSING:
                self.logger.debug("Cache hit", method=method, key=key, site_id=site.id)
                self._count("cache_hits_total", component=options.component)
                self._count("gateway_calls_total", outcome="cache")
                return Immediate(cached, from_cache=True)
            self._count("cache_misses_total", component=options.component)

        if not self.connectivity.is_connected():
            if options.queueable:
                return await self._defer(RemoteCallEntry(site_id=site.id, method=method, params=params))
            fallback = await self._stale_fallback(key, site.id)
            if fallback is not None:
                return fallback
            return self._fail(
                OfflineError(f"Cannot call {method} while offline", details={"method": method, "site_id": site.id}),
                options.silent,
            )

        try:
            value = await self.dispatch(method, params, site)
        except AccessLayerException as exc:
            if exc.transient and options.queueable:
                return await self._defer(RemoteCallEntry(site_id=site.id, method=method, params=params))
            if exc.transient and options.force_cache:
                fallback = await self._stale_fallback(key, site.id)
                if fallback is not None:
                    return fallback
            return self._fail(exc, options.silent)

        if options.cache:
            ttl = options.ttl if options.ttl is not None else self.default_ttl
            await self.cache.put(key, value, options.component, ttl, site_id=site.id)

        self._count("gateway_calls_total", outcome="network")
        return Immediate(value)

    async def dispatch(self, method: str, params: Dict[str, Any], site: Site) -> Any:
        """Online network path shared with queue replay; raises on failure."""
        start = time.perf_counter()
        try:
            return await self.transport.send(method, params, site)
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "remote_call_duration_seconds", time.perf_counter() - start, method=method
                )

    async def upload(
        self,
        local_path: str,
        remote_target: str,
        site: Site,
        queueable: bool = True,
        silent: bool = False,
    ) -> Outcome:
        """Upload a file now, or defer it when offline or the site is unreachable."""
        entry = UploadEntry(site_id=site.id, local_path=local_path, remote_target=remote_target)
        if not self.connectivity.is_connected():
            if queueable:
                return await self._defer(entry)
            return self._fail(OfflineError(f"Cannot upload {local_path} while offline"), silent)

        try:
            await self.send_upload(local_path, remote_target, site)
        except AccessLayerException as exc:
            if exc.transient and queueable:
                return await self._defer(entry)
            return self._fail(exc, silent)

        self._count("gateway_calls_total", outcome="network")
        return Immediate(remote_target)

    async def download(
        self,
        url: str,
        destination: str,
        site: Site,
        resource_key: str,
        component: str = "core",
        queueable: bool = True,
        silent: bool = False,
    ) -> Outcome:
        """Download a file now, or defer it when offline or the site is unreachable."""
        entry = DownloadEntry(
            site_id=site.id,
            url=url,
            destination=destination,
            resource_key=resource_key,
            component=component,
        )
        if not self.connectivity.is_connected():
            if queueable:
                return await self._defer(entry)
            return self._fail(OfflineError(f"Cannot download {url} while offline"), silent)

        try:
            local_path = await self.fetch_download(url, destination, site, resource_key, component)
        except AccessLayerException as exc:
            if exc.transient and queueable:
                return await self._defer(entry)
            return self._fail(exc, silent)

        self._count("gateway_calls_total", outcome="network")
        return Immediate(local_path)

    async def send_upload(self, local_path: str, remote_target: str, site: Site) -> None:
        """Upload path shared with queue replay; raises on failure."""
        await self._require_file_transfer().upload(local_path, remote_target, site)

    async def fetch_download(
        self,
        url: str,
        destination: str,
        site: Site,
        resource_key: str,
        component: str = "core",
    ) -> str:
        """Download path shared with queue replay; caches the local path on success."""
        local_path = await self._require_file_transfer().download(url, destination, site)
        await self.cache.put(resource_key, local_path, component, None, site_id=site.id)
        return local_path

    async def seed_cache(self, key: str, value: Any, component: str = "core", ttl: Optional[float] = None) -> None:
        """Store a value obtained outside ``call`` (e.g. language packs), shared by every site."""
        await self.cache.put(key, value, component, ttl)

    async def read_cache(self, key: str, force_cache: bool = False) -> Any:
        return await self.cache.get(key, force_cache=force_cache)

    async def purge_cache(self, component: Optional[str] = None) -> int:
        return await self.cache.purge(component)

    async def _defer(self, entry: Any) -> Deferred:
        entry_id = await self.queue.enqueue(entry)
        self._count("gateway_calls_total", outcome="deferred")
        return Deferred(entry_id)

    async def _stale_fallback(self, key: str, site_id: str) -> Optional[Immediate]:
        entry = await self.cache.get_entry(key, site_id)
        if entry is None:
            return None
        stale = entry.is_expired(self.cache.clock())
        self.logger.info("Serving cached value without network", key=key, stale=stale)
        self._count("gateway_calls_total", outcome="cache")
        return Immediate(entry.value, from_cache=True, stale=stale)

    def _fail(self, error: AccessLayerException, silent: bool) -> Failed:
        self._count("gateway_calls_total", outcome="failed")
        if self.metrics:
            self.metrics.record_error(error.code)

        if silent:
            self.logger.debug("Call failed", code=error.code, error=error.message)
        else:
            self.logger.warning("Call failed", code=error.code, error=error.message)
            if self.error_reporter is not None:
                self.error_reporter(error)

        return Failed(error)

    def _require_file_transfer(self) -> FileTransferClient:
        if self.file_transfer is None:
            raise ValidationError("File transfer client is not configured")
        return self.file_transfer

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
