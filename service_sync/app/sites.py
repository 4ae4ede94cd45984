"""
Registry of sites the client is logged into.
"""

from typing import List, Optional

from shared.errors import SiteNotFoundError
from shared.logging import get_logger
from .adapters.file_transfer import pluginfile_url
from .domain.models import Site
from .storage.local_db import LocalDatabase


class SiteRegistry:
    """Persists site credentials next to the queue they own."""

    def __init__(self, database: LocalDatabase):
        self.database = database
        self.logger = get_logger("sync.sites")

    async def add(self, site: Site) -> Site:
        await self.database.upsert_site(site)
        self.logger.info("Site registered", site_id=site.id, url=site.url)
        return site

    async def get(self, site_id: str) -> Optional[Site]:
        return await self.database.get_site(site_id)

    async def require(self, site_id: str) -> Site:
        """Like ``get`` but raises ``SiteNotFoundError`` for unknown ids."""
        site = await self.database.get_site(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)
        return site

    async def list(self) -> List[Site]:
        return await self.database.list_sites()

    async def remove(self, site_id: str) -> bool:
        removed = await self.database.delete_site(site_id)
        if removed:
            self.logger.info("Site removed", site_id=site_id)
        return removed

    @staticmethod
    def pluginfile_url(site: Site, url: str) -> str:
        """Authenticated download URL for a file hosted by ``site``."""
        return pluginfile_url(url, site.token)
