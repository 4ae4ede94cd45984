"""
Client cache with expiry and force-retain semantics.
"""

import hashlib
import json
import time
from typing import Any, Callable, Dict, Optional

from shared.logging import get_logger
from ..domain.models import CacheEntry
from .backends import CacheBackend


class _Missing:
    """Sentinel for a cache miss; cached values may legitimately be None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

_SCALARS = (str, int, float, bool)
_RESERVED = frozenset("-=")


def _render(value: Any) -> str:
    return str(value).lower() if isinstance(value, bool) else str(value)


def cache_key_for(method: str, params: Optional[Dict[str, Any]] = None, component: str = "core") -> str:
    """Build the ``{component}-{resource}-{discriminator}`` key for a remote call.

    The discriminator names every parameter in sorted order, so
    ``cache_key_for("get_grades", {"userid": 5})`` is
    ``core-get_grades-userid=5`` and never matches ``{"courseid": 5}``.
    A call without parameters uses ``all``. Parameters that cannot be
    rendered unambiguously (nested values, or ``-`` / ``=`` in a name or
    value) are replaced by a digest of their canonical JSON.
    """
    params = params or {}
    if not params:
        return f"{component}-{method}-all"

    names = sorted(params)
    if all(isinstance(params[name], _SCALARS) for name in names):
        parts = [(str(name), _render(params[name])) for name in names]
        if not any(_RESERVED.intersection(part) or part == "" for pair in parts for part in pair):
            return f"{component}-{method}-" + "-".join(f"{name}={value}" for name, value in parts)

    canonical = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]
    return f"{component}-{method}-{digest}"


class CacheStore:
    """Key/value cache persisted through a backend.

    Entries belong to a site when ``site_id`` is given, so two sites calling
    the same method never read each other's data; the empty ``site_id`` is
    shared by every site (language packs).
    """

    def __init__(self, backend: CacheBackend, clock: Callable[[], float] = time.time):
        self.backend = backend
        self.clock = clock
        self.logger = get_logger("sync.cache_store")

    async def get(self, key: str, force_cache: bool = False, site_id: str = "") -> Any:
        """Return the cached value, or MISSING.

        Expired entries count as missing unless ``force_cache`` is set, in
        which case the stale value is returned.
        """
        entry = await self.backend.load(key, site_id)
        if entry is None:
            return MISSING
        if entry.is_expired(self.clock()) and not force_cache:
            self.logger.debug("Cache entry expired", key=key, site_id=site_id, expires_at=entry.expires_at)
            return MISSING
        return entry.value

    async def get_entry(self, key: str, site_id: str = "") -> Optional[CacheEntry]:
        """Return the raw entry regardless of expiry."""
        return await self.backend.load(key, site_id)

    async def put(
        self,
        key: str,
        value: Any,
        component: str = "core",
        ttl: Optional[float] = None,
        site_id: str = "",
    ) -> CacheEntry:
        """Store ``value`` under ``key``; ``ttl=None`` never expires."""
        now = self.clock()
        entry = CacheEntry(
            key=key,
            site_id=site_id,
            value=value,
            component=component,
            created_at=now,
            expires_at=None if ttl is None else now + ttl,
        )
        await self.backend.save(entry)
        self.logger.debug("Cached value", key=key, site_id=site_id, component=component, ttl=ttl)
        return entry

    async def purge(self, component: Optional[str] = None) -> int:
        """Remove all entries of ``component``, or every entry."""
        removed = await self.backend.delete(component)
        self.logger.info("Cache purged", component=component or "*", removed=removed)
        return removed
