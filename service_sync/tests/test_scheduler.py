"""
Unit tests for sync scheduling.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from service_sync.app.domain.models import CallOptions, Deferred, SyncReport
from service_sync.app.sites import SiteRegistry
from service_sync.app.sync.scheduler import SyncScheduler


class TestSyncScheduler:
    """Test cases for SyncScheduler."""

    @pytest.fixture
    def sites(self, database):
        return SiteRegistry(database)

    @pytest.fixture
    def scheduler(self, runner, sites):
        return SyncScheduler(runner, sites)

    @pytest.mark.asyncio
    async def test_run_site(self, scheduler, queue, gateway, network_state, site):
        network_state.set_online(False)
        await gateway.call("submit_grade", {"grade": 2}, site, CallOptions(queueable=True))
        network_state.set_online(True)

        report = await scheduler.run_site(site)

        assert report.succeeded
        assert await queue.count(site.id) == 0

    @pytest.mark.asyncio
    async def test_overlapping_run_skipped(self, scheduler, site):
        async with scheduler._lock_for(site.id):
            assert scheduler.is_running(site.id)
            assert await scheduler.run_site(site) is None

        assert not scheduler.is_running(site.id)

    @pytest.mark.asyncio
    async def test_concurrent_requests_run_once(self, sites, site):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_run(target):
            started.set()
            await release.wait()
            return SyncReport(site_id=target.id)

        runner = MagicMock()
        runner.run = AsyncMock(side_effect=slow_run)
        scheduler = SyncScheduler(runner, sites)

        first = asyncio.create_task(scheduler.run_site(site))
        await started.wait()
        second = await scheduler.run_site(site)
        release.set()

        assert second is None
        assert (await first).site_id == site.id
        assert runner.run.await_count == 1

    @pytest.mark.asyncio
    async def test_regained_connectivity_replays_known_sites(self, scheduler, sites, gateway, queue, network_state, transport, site):
        await sites.add(site)
        network_state.add_regain_listener(scheduler.on_connectivity_regained)
        network_state.set_online(False)
        outcome = await gateway.call("submit_grade", {"grade": 2}, site, CallOptions(queueable=True))
        assert isinstance(outcome, Deferred)

        for pending in network_state.set_online(True):
            await pending

        assert await queue.count(site.id) == 0
        assert transport.calls[0][0] == "submit_grade"

    @pytest.mark.asyncio
    async def test_periodic_sync(self, sites, site):
        await sites.add(site)
        runner = MagicMock()
        runner.run = AsyncMock(return_value=SyncReport(site_id=site.id))
        scheduler = SyncScheduler(runner, sites, interval_seconds=0.01)

        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert runner.run.await_count >= 1
        runner.run.assert_awaited_with(site)

    @pytest.mark.asyncio
    async def test_start_without_interval_is_noop(self, scheduler):
        scheduler.start()

        assert scheduler._task is None
        await scheduler.stop()
