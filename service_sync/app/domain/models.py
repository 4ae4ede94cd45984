"""
Typed records shared by the gateway, the cache and the sync queue.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from shared.errors import AccessLayerException


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallOptions(BaseModel):
    """Per-call behaviour switches accepted by the gateway."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    cache: bool = Field(default=False, description="Attempt a cache read before the network")
    omit_expires: bool = Field(default=False, description="Treat cached values as fresh regardless of TTL")
    force_cache: bool = Field(default=False, description="Fall back to stale cached values when the network path fails")
    silent: bool = Field(default=False, description="Suppress user-visible error reporting")
    queueable: bool = Field(default=False, description="Defer the call instead of failing when it cannot complete")
    ttl: Optional[float] = Field(default=None, ge=0, description="Cache TTL in seconds; None uses the configured default")
    component: str = Field(default="core", description="Cache owner tag")


class Site(BaseModel):
    """A remote endpoint plus the credential used against it."""

    id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    token: str = Field(..., description="Opaque credential attached to every call")
    username: Optional[str] = None
    lang: Optional[str] = None


class CacheEntry(BaseModel):
    """Cached payload with optional expiry (epoch seconds)."""

    key: str
    site_id: str = ""
    value: Any = None
    component: str = "core"
    created_at: float
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        """Whether the entry is stale at ``now``."""
        return self.expires_at is not None and now >= self.expires_at


class _BaseQueueEntry(BaseModel):
    id: Optional[int] = None
    site_id: str
    created_at: datetime = Field(default_factory=utcnow)


class RemoteCallEntry(_BaseQueueEntry):
    """Deferred remote method call."""
    kind: Literal["remote-call"] = "remote-call"
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class UploadEntry(_BaseQueueEntry):
    """Deferred file upload."""
    kind: Literal["upload"] = "upload"
    local_path: str
    remote_target: str


class DownloadEntry(_BaseQueueEntry):
    """Deferred file download; the local path is cached under ``resource_key``."""
    kind: Literal["download"] = "download"
    url: str
    destination: str
    resource_key: str
    component: str = "core"


QueueEntry = Annotated[
    Union[RemoteCallEntry, UploadEntry, DownloadEntry],
    Field(discriminator="kind"),
]

queue_entry_adapter: TypeAdapter = TypeAdapter(QueueEntry)


class SyncLogRecord(BaseModel):
    """One line of the durable sync log."""

    id: Optional[int] = None
    created_at: float
    component: str = "Sync"
    message: str

    def format(self) -> str:
        stamp = datetime.fromtimestamp(self.created_at).strftime("%d/%m/%y %H:%M:%S")
        return f"{stamp} {self.component}: {self.message}"


class SyncReport(BaseModel):
    """Summary of one replay pass over a site's queue."""

    site_id: str
    skipped_reason: Optional[str] = None
    succeeded: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


@dataclass(frozen=True)
class Immediate:
    """Call resolved now, from cache or from a completed round trip."""
    value: Any
    from_cache: bool = False
    stale: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {"status": "immediate", "value": self.value, "from_cache": self.from_cache, "stale": self.stale}


@dataclass(frozen=True)
class Deferred:
    """Call stored in the sync queue for later replay."""
    entry_id: int

    def as_dict(self) -> Dict[str, Any]:
        return {"status": "deferred", "entry_id": self.entry_id}


@dataclass(frozen=True)
class Failed:
    """Call could neither complete nor be deferred."""
    error: AccessLayerException

    def as_dict(self) -> Dict[str, Any]:
        return {"status": "failed", "error": self.error.to_response().model_dump()}


Outcome = Union[Immediate, Deferred, Failed]
