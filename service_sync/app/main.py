"""
Offline sync service for the access layer.

Wires the cache, queue, gateway and replay machinery to a local database and
exposes them through a small control API.
"""

from typing import Any, Dict, List, Optional

from fastapi import Query, Response
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.circuit_breaker import CircuitBreakerManager
from shared.config import ServiceConfig, get_config
from shared.errors import ValidationError
from shared.logging import set_site_context
from shared.retry import RetryConfig
from .adapters.file_transfer import FileTransferClient
from .adapters.ws_client import WebServiceClient
from .caching.backends import RedisCacheBackend, SQLiteCacheBackend
from .caching.cache_store import CacheStore
from .connectivity.monitor import (
    ConnectivityMonitor,
    ManualNetworkState,
    NetworkState,
    ObservedNetworkState,
    SocketProbeNetworkState,
)
from .domain.models import CallOptions, Site
from .gateway.dispatcher import Gateway
from .lang import LangSync
from .sites import SiteRegistry
from .storage.local_db import LocalDatabase
from .sync.log import SyncLog
from .sync.queue import SyncQueue
from .sync.runner import SyncRunner
from .sync.scheduler import SyncScheduler


class CallRequest(BaseModel):
    """Remote call submitted through the control API."""

    method: str = Field(..., min_length=1)
    params: Dict[str, Any] = Field(default_factory=dict)
    options: CallOptions = Field(default_factory=CallOptions)


class ConnectivityRequest(BaseModel):
    online: bool


class LangSyncRequest(BaseModel):
    lang: Optional[str] = None
    components: List[str] = Field(default_factory=lambda: ["core"])


class SyncService(BaseService):
    """Offline sync service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        network_state: Optional[NetworkState] = None,
        transport: Optional[WebServiceClient] = None,
        file_transfer: Optional[FileTransferClient] = None,
    ):
        super().__init__("sync", 8090, config=config)

        self.database = LocalDatabase(self.config.database_path)
        self.cache_backend = self._create_cache_backend()
        self.cache = CacheStore(self.cache_backend)

        if network_state is None:
            if self.config.probe_host:
                network_state = SocketProbeNetworkState(
                    self.config.probe_host,
                    self.config.probe_port,
                    interval=self.config.probe_interval_seconds,
                )
            else:
                network_state = ManualNetworkState(online=True)
        self.network_state = network_state
        self.connectivity = ConnectivityMonitor(network_state, force_offline=self.config.force_offline)

        self.circuit_breakers = CircuitBreakerManager(
            failure_threshold=self.config.circuit_failure_threshold,
            recovery_timeout=self.config.circuit_recovery_timeout,
        )
        self.transport = transport or WebServiceClient(
            ws_path=self.config.ws_path,
            timeout=self.config.request_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=self.config.retry_max_attempts,
                base_delay=self.config.retry_base_delay,
                max_delay=5.0,
            ),
            circuit_breakers=self.circuit_breakers,
        )
        self.file_transfer = file_transfer or FileTransferClient(
            upload_path=self.config.upload_path,
            timeout=self.config.request_timeout_seconds,
        )

        self.queue = SyncQueue(self.database, metrics=self.metrics)
        self.gateway = Gateway(
            self.cache,
            self.queue,
            self.connectivity,
            self.transport,
            self.file_transfer,
            default_ttl=self.config.cache_default_ttl,
            error_reporter=self._report_error,
            metrics=self.metrics,
        )
        self.sync_log = SyncLog(self.database, max_length=self.config.log_length, dev_debug=self.config.dev_debug)
        self.runner = SyncRunner(
            self.gateway,
            self.queue,
            self.connectivity,
            self.sync_log,
            sync_enabled=self.config.sync_enabled,
            metrics=self.metrics,
        )
        self.sites = SiteRegistry(self.database)
        self.scheduler = SyncScheduler(self.runner, self.sites, interval_seconds=self.config.sync_interval_seconds)
        self.lang_sync = LangSync(self.gateway, self.connectivity, enabled=self.config.lang_sync_enabled)

        if isinstance(self.network_state, ObservedNetworkState):
            self.network_state.add_regain_listener(self.scheduler.on_connectivity_regained)

        @self.app.on_event("startup")
        async def _startup():
            if isinstance(self.network_state, SocketProbeNetworkState):
                self.network_state.start()
            if self.config.sync_enabled:
                self.scheduler.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.scheduler.stop()
            if isinstance(self.network_state, SocketProbeNetworkState):
                await self.network_state.stop()
            if isinstance(self.cache_backend, RedisCacheBackend):
                await self.cache_backend.close()

        self._setup_sync_routes()

    def _create_cache_backend(self):
        if self.config.cache_backend == "redis":
            return RedisCacheBackend(self.config.redis_url)
        if self.config.cache_backend != "sqlite":
            raise ValueError(f"Unsupported cache backend: {self.config.cache_backend}")
        return SQLiteCacheBackend(self.database)

    def _report_error(self, error) -> None:
        self.logger.error("Remote call failed", code=error.code, message=error.message, details=error.details)

    async def _check_dependencies(self) -> Dict[str, Any]:
        stats = await self.database.stats()
        return {
            "database": "ok",
            "online": self.connectivity.is_connected(),
            "queue_depth": stats.get("sync_queue", 0),
        }

    def _setup_sync_routes(self):
        """Set up control API routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Offline Access Layer sync service",
                "version": "1.0.0",
            }

        @self.app.get("/api/v1/status")
        async def api_status():
            return {
                "online": self.connectivity.is_connected(),
                "sync_enabled": self.config.sync_enabled,
                "queue_depth": await self.queue.count(),
                "circuit_breakers": self.circuit_breakers.get_all_states(),
            }

        @self.app.get("/api/v1/sites")
        async def list_sites():
            return {"sites": [site.model_dump(exclude={"token"}) for site in await self.sites.list()]}

        @self.app.post("/api/v1/sites", status_code=201)
        async def add_site(site: Site):
            await self.sites.add(site)
            return site.model_dump(exclude={"token"})

        @self.app.delete("/api/v1/sites/{site_id}")
        async def remove_site(site_id: str):
            await self.sites.require(site_id)
            await self.sites.remove(site_id)
            return {"removed": site_id}

        @self.app.post("/api/v1/sites/{site_id}/call")
        async def call_site(site_id: str, call: CallRequest):
            site = await self.sites.require(site_id)
            set_site_context(site.id)
            outcome = await self.gateway.call(call.method, call.params, site, call.options)
            return outcome.as_dict()

        @self.app.get("/api/v1/sites/{site_id}/queue")
        async def get_site_queue(site_id: str):
            site = await self.sites.require(site_id)
            entries = await self.queue.list(site.id)
            return {
                "site_id": site.id,
                "count": len(entries),
                "entries": [entry.model_dump(mode="json") for entry in entries],
            }

        @self.app.post("/api/v1/sites/{site_id}/sync")
        async def sync_site(site_id: str, response: Response):
            site = await self.sites.require(site_id)
            set_site_context(site.id)
            report = await self.scheduler.run_site(site)
            if report is None:
                response.status_code = 409
                return {"site_id": site.id, "skipped_reason": "already running"}
            return report.model_dump()

        @self.app.post("/api/v1/sites/{site_id}/lang")
        async def sync_site_lang(site_id: str, request: LangSyncRequest):
            site = await self.sites.require(site_id)
            results = await self.lang_sync.sync(site, request.lang, request.components)
            return {"site_id": site.id, "results": results}

        @self.app.delete("/api/v1/cache")
        async def purge_cache(component: Optional[str] = Query(default=None)):
            removed = await self.gateway.purge_cache(component)
            return {"component": component, "removed": removed}

        @self.app.get("/api/v1/log")
        async def get_sync_log(
            limit: Optional[int] = Query(default=None, ge=1),
            filter_text: Optional[str] = Query(default=None, alias="filter"),
        ):
            records = await self.sync_log.entries(limit)
            return {
                "entries": [record.model_dump() for record in records],
                "formatted": await self.sync_log.formatted(filter_text),
            }

        @self.app.put("/api/v1/connectivity")
        async def set_connectivity(request: ConnectivityRequest):
            if not isinstance(self.network_state, ManualNetworkState):
                raise ValidationError("Network state is probed and cannot be set manually")
            for pending in self.network_state.set_online(request.online):
                await pending
            return {"online": self.connectivity.is_connected()}


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = SyncService(config=config or get_config("sync", 8090))
    return service.app


if __name__ == "__main__":
    service = SyncService()
    service.run()
