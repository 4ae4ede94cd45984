"""
Shared fixtures for the sync service tests.
"""

from typing import Any, Dict, List, Tuple

import pytest

from service_sync.app.caching.backends import SQLiteCacheBackend
from service_sync.app.caching.cache_store import CacheStore
from service_sync.app.connectivity.monitor import ConnectivityMonitor, ManualNetworkState
from service_sync.app.domain.models import Site
from service_sync.app.gateway.dispatcher import Gateway
from service_sync.app.storage.local_db import LocalDatabase
from service_sync.app.sync.log import SyncLog
from service_sync.app.sync.queue import SyncQueue
from service_sync.app.sync.runner import SyncRunner


class FakeClock:
    """Manually advanced clock (epoch seconds)."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Records calls; answers from ``responses`` or raises ``failures``."""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any], str]] = []
        self.responses: Dict[str, Any] = {}
        self.failures: Dict[str, Exception] = {}
        self.default: Any = {"ok": True}

    async def send(self, method: str, params: Dict[str, Any], site: Site) -> Any:
        self.calls.append((method, dict(params), site.id))
        if method in self.failures:
            raise self.failures[method]
        return self.responses.get(method, self.default)


class FakeFileTransfer:
    """In-memory stand-in for FileTransferClient."""

    def __init__(self):
        self.uploads: List[Tuple[str, str, str]] = []
        self.downloads: List[Tuple[str, str, str]] = []
        self.error: Exception = None

    async def upload(self, local_path: str, remote_target: str, site: Site) -> None:
        if self.error is not None:
            raise self.error
        self.uploads.append((local_path, remote_target, site.id))

    async def download(self, url: str, destination: str, site: Site) -> str:
        if self.error is not None:
            raise self.error
        self.downloads.append((url, destination, site.id))
        return destination


@pytest.fixture
def site():
    return Site(id="site1", url="https://school.example.org", token="tok-123", lang="en")


@pytest.fixture
def other_site():
    return Site(id="site2", url="https://campus.example.net", token="tok-456")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database(tmp_path):
    return LocalDatabase(tmp_path / "offline.db")


@pytest.fixture
def network_state():
    return ManualNetworkState(online=True)


@pytest.fixture
def connectivity(network_state):
    return ConnectivityMonitor(network_state)


@pytest.fixture
def cache(database, clock):
    return CacheStore(SQLiteCacheBackend(database), clock=clock)


@pytest.fixture
def queue(database):
    return SyncQueue(database)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def file_transfer():
    return FakeFileTransfer()


@pytest.fixture
def gateway(cache, queue, connectivity, transport, file_transfer):
    return Gateway(cache, queue, connectivity, transport, file_transfer, default_ttl=3600.0)


@pytest.fixture
def sync_log(database, clock):
    return SyncLog(database, max_length=50, dev_debug=True, clock=clock)


@pytest.fixture
def runner(gateway, queue, connectivity, sync_log):
    return SyncRunner(gateway, queue, connectivity, sync_log, sync_enabled=True)
