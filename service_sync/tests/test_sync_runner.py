"""
Unit tests for queue replay.
"""

import pytest

from shared.errors import ServerError, TransferError, TransportError
from shared.metrics import MetricsCollector
from service_sync.app.caching.cache_store import MISSING
from service_sync.app.domain.models import CallOptions, Deferred, DownloadEntry, RemoteCallEntry, UploadEntry
from service_sync.app.sync.runner import SyncRunner, describe_entry


class TestSyncRunner:
    """Test cases for SyncRunner."""

    @pytest.mark.asyncio
    async def test_replay_follows_insertion_order(self, runner, queue, transport, site):
        a = await queue.enqueue(RemoteCallEntry(site_id=site.id, method="a", params={"n": 1}))
        b = await queue.enqueue(RemoteCallEntry(site_id=site.id, method="b", params={"n": 2}))
        c = await queue.enqueue(RemoteCallEntry(site_id=site.id, method="c", params={"n": 3}))
        transport.failures["b"] = TransportError("timeout")
        before = (await queue.get(b)).model_dump()

        report = await runner.run(site)

        assert [call[0] for call in transport.calls] == ["a", "b", "c"]
        assert report.succeeded == [a, c]
        assert report.failed == [b]
        remaining = await queue.list(site.id)
        assert [entry.id for entry in remaining] == [b]
        assert remaining[0].model_dump() == before

    @pytest.mark.asyncio
    async def test_failed_entry_retried_on_next_run(self, runner, queue, transport, site):
        entry_id = await queue.enqueue(RemoteCallEntry(site_id=site.id, method="submit_grade"))
        transport.failures["submit_grade"] = ServerError("servicenotavailable")

        first = await runner.run(site)
        del transport.failures["submit_grade"]
        second = await runner.run(site)

        assert first.failed == [entry_id]
        assert second.succeeded == [entry_id]
        assert await queue.count(site.id) == 0

    @pytest.mark.asyncio
    async def test_submit_grade_deferred_then_replayed(self, runner, gateway, queue, sync_log, network_state, transport, site):
        network_state.set_online(False)
        outcome = await gateway.call(
            "submit_grade", {"itemid": 4, "userid": 5, "grade": 8}, site, CallOptions(queueable=True)
        )

        assert isinstance(outcome, Deferred)
        assert await queue.count(site.id) == 1

        network_state.set_online(True)
        report = await runner.run(site)

        assert report.succeeded == [outcome.entry_id]
        assert await queue.count(site.id) == 0
        assert transport.calls == [("submit_grade", {"itemid": 4, "userid": 5, "grade": 8}, "site1")]
        log = await sync_log.entries()
        assert len(log) == 1
        assert "submit_grade" in log[0].message
        assert log[0].component == "Sync"

    @pytest.mark.asyncio
    async def test_disabled_sync_is_noop(self, gateway, queue, connectivity, sync_log, transport, site):
        runner = SyncRunner(gateway, queue, connectivity, sync_log, sync_enabled=False)
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="submit_grade"))

        report = await runner.run(site)

        assert report.skipped_reason == "disabled"
        assert report.attempted == 0
        assert transport.calls == []
        assert await queue.count(site.id) == 1
        assert await sync_log.entries() == []

    @pytest.mark.asyncio
    async def test_offline_run_is_noop(self, runner, queue, network_state, transport, site):
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="submit_grade"))
        network_state.set_online(False)

        report = await runner.run(site)

        assert report.skipped_reason == "offline"
        assert transport.calls == []
        assert await queue.count(site.id) == 1

    @pytest.mark.asyncio
    async def test_only_requested_site_replayed(self, runner, queue, transport, site, other_site):
        await queue.enqueue(RemoteCallEntry(site_id=other_site.id, method="elsewhere"))
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="here"))

        await runner.run(site)

        assert [call[0] for call in transport.calls] == ["here"]
        assert await queue.count(other_site.id) == 1

    @pytest.mark.asyncio
    async def test_run_all_replays_each_site(self, runner, queue, transport, site, other_site):
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="first"))
        await queue.enqueue(RemoteCallEntry(site_id=other_site.id, method="second"))

        reports = await runner.run_all([site, other_site])

        assert [report.site_id for report in reports] == ["site1", "site2"]
        assert [call[2] for call in transport.calls] == ["site1", "site2"]
        assert await queue.count() == 0

    @pytest.mark.asyncio
    async def test_upload_and_download_replay(self, runner, queue, cache, file_transfer, site):
        await queue.enqueue(UploadEntry(site_id=site.id, local_path="/data/essay.odt", remote_target="draft"))
        await queue.enqueue(
            DownloadEntry(
                site_id=site.id,
                url="https://school.example.org/pluginfile.php/9/a.pdf",
                destination="/data/a.pdf",
                resource_key="mod_resource-file-9",
                component="mod_resource",
            )
        )

        report = await runner.run(site)

        assert len(report.succeeded) == 2
        assert file_transfer.uploads == [("/data/essay.odt", "draft", "site1")]
        assert file_transfer.downloads[0][1] == "/data/a.pdf"
        assert await cache.get("mod_resource-file-9", site_id=site.id) == "/data/a.pdf"

    @pytest.mark.asyncio
    async def test_failed_download_leaves_cache_untouched(self, runner, queue, cache, file_transfer, site):
        entry_id = await queue.enqueue(
            DownloadEntry(site_id=site.id, url="https://x/pluginfile.php/1/a", destination="/d/a", resource_key="core-file-1")
        )
        file_transfer.error = TransferError("404")

        report = await runner.run(site)

        assert report.failed == [entry_id]
        assert await cache.get("core-file-1", site_id=site.id) is MISSING

    @pytest.mark.asyncio
    async def test_replay_metrics(self, gateway, queue, connectivity, sync_log, transport, site):
        metrics = MetricsCollector("runner-test")
        runner = SyncRunner(gateway, queue, connectivity, sync_log, metrics=metrics)
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="ok"))
        await queue.enqueue(RemoteCallEntry(site_id=site.id, method="bad"))
        transport.failures["bad"] = TransportError()

        await runner.run(site)

        exported = metrics.export().decode()
        assert 'sync_replays_total{kind="remote-call",result="success"} 1.0' in exported
        assert 'sync_replays_total{kind="remote-call",result="failure"} 1.0' in exported

    def test_describe_entry(self):
        entry = RemoteCallEntry(id=3, site_id="site1", method="mod_forum_add_discussion")

        assert describe_entry(entry) == "#3 call mod_forum_add_discussion"
