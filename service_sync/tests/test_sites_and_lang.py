"""
Unit tests for the site registry and language string sync.
"""

import pytest

from shared.errors import ServerError, SiteNotFoundError
from service_sync.app.domain.models import Site
from service_sync.app.lang import LangSync, lang_cache_key
from service_sync.app.sites import SiteRegistry


class TestSiteRegistry:
    """Test cases for SiteRegistry."""

    @pytest.fixture
    def registry(self, database):
        return SiteRegistry(database)

    @pytest.mark.asyncio
    async def test_add_get_list_remove(self, registry, site, other_site):
        await registry.add(site)
        await registry.add(other_site)

        assert await registry.get("site1") == site
        assert [s.id for s in await registry.list()] == ["site1", "site2"]
        assert await registry.remove("site1") is True
        assert await registry.get("site1") is None
        assert await registry.remove("site1") is False

    @pytest.mark.asyncio
    async def test_add_updates_token(self, registry, site):
        await registry.add(site)
        await registry.add(Site(id=site.id, url=site.url, token="renewed"))

        assert (await registry.require(site.id)).token == "renewed"

    @pytest.mark.asyncio
    async def test_require_unknown_site(self, registry):
        with pytest.raises(SiteNotFoundError) as exc_info:
            await registry.require("nope")

        assert exc_info.value.details == {"site_id": "nope"}


class TestLangSync:
    """Test cases for LangSync."""

    @pytest.fixture
    def lang_sync(self, gateway, connectivity):
        return LangSync(gateway, connectivity)

    def test_cache_key(self):
        assert lang_cache_key("mod_forum", "es") == "lang-mod_forum-es"

    @pytest.mark.asyncio
    async def test_sync_seeds_cache(self, lang_sync, transport, cache, clock, site):
        transport.responses["core_get_component_strings"] = [{"stringid": "yes", "string": "Sí"}]

        results = await lang_sync.sync(site, "es", ["core", "mod_forum"])

        assert results == {"core": True, "mod_forum": True}
        assert transport.calls[0][1] == {"component": "mobile", "lang": "es"}
        assert transport.calls[1][1] == {"component": "mod_forum", "lang": "es"}
        clock.advance(10 ** 7)
        entry = await cache.get_entry("lang-core-es")
        assert entry.component == "lang"
        assert entry.expires_at is None
        assert await lang_sync.cached_strings("core", "es") == [{"stringid": "yes", "string": "Sí"}]

    @pytest.mark.asyncio
    async def test_site_language_is_default(self, lang_sync, transport, site):
        await lang_sync.sync(site)

        assert transport.calls[0][1]["lang"] == "en"

    @pytest.mark.asyncio
    async def test_failed_component(self, lang_sync, transport, site):
        transport.failures["core_get_component_strings"] = ServerError("invalidparameter")

        results = await lang_sync.sync(site, "xx")

        assert results == {"core": False}
        assert await lang_sync.cached_strings("core", "xx") is None

    @pytest.mark.asyncio
    async def test_offline_skips(self, lang_sync, network_state, transport, site):
        network_state.set_online(False)

        assert await lang_sync.sync(site, "es") == {}
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_disabled(self, gateway, connectivity, transport, site):
        lang_sync = LangSync(gateway, connectivity, enabled=False)

        assert await lang_sync.sync(site, "es") == {}
        assert transport.calls == []
