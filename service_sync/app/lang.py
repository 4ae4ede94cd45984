"""
Language string synchronization.

Strings fetched from a site are kept in the ``lang`` cache component without
expiry so the interface keeps its translations while offline.
"""

from typing import Dict, Iterable, Optional

from shared.logging import get_logger
from .caching.cache_store import MISSING
from .connectivity.monitor import ConnectivityMonitor
from .domain.models import CallOptions, Immediate, Site
from .gateway.dispatcher import Gateway

LANG_COMPONENT = "lang"
STRINGS_METHOD = "core_get_component_strings"
DEFAULT_LANG = "en"


def lang_cache_key(component: str, lang: str) -> str:
    return f"{LANG_COMPONENT}-{component}-{lang}"


class LangSync:
    """Downloads component strings and seeds them into the cache."""

    def __init__(self, gateway: Gateway, connectivity: ConnectivityMonitor, enabled: bool = True):
        self.gateway = gateway
        self.connectivity = connectivity
        self.enabled = enabled
        self.logger = get_logger("sync.lang")

    async def sync(self, site: Site, lang: Optional[str] = None, components: Iterable[str] = ("core",)) -> Dict[str, bool]:
        """Fetch strings for each component; returns success per component."""
        lang = lang or site.lang or DEFAULT_LANG
        if not self.enabled or not self.connectivity.is_connected():
            self.logger.info("Language sync skipped", site_id=site.id, lang=lang)
            return {}

        results: Dict[str, bool] = {}
        for component in components:
            remote_component = "mobile" if component == "core" else component
            outcome = await self.gateway.call(
                STRINGS_METHOD,
                {"component": remote_component, "lang": lang},
                site,
                CallOptions(silent=True),
            )
            if isinstance(outcome, Immediate):
                await self.gateway.seed_cache(lang_cache_key(component, lang), outcome.value, LANG_COMPONENT, None)
                results[component] = True
            else:
                results[component] = False

        self.logger.info("Language sync completed", site_id=site.id, lang=lang, results=results)
        return results

    async def cached_strings(self, component: str, lang: str) -> Optional[Dict]:
        """Previously synchronized strings, or None."""
        value = await self.gateway.read_cache(lang_cache_key(component, lang), force_cache=True)
        if value is MISSING:
            return None
        return value
