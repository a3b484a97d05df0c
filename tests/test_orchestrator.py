"""SeedSyncOrchestrator tests: per-item isolation, progress, summary entries."""

import asyncio
import logging

import pytest

from studio_sync.models import Severity, SyncStatus
from studio_sync.seed import SEED_ARTICLES
from studio_sync.sync import SeedSyncOrchestrator


def ten_articles():
    return [{"id": f"art-t{i}", "title": f"Article {i}"} for i in range(10)]


@pytest.fixture
def orchestrator(engine) -> SeedSyncOrchestrator:
    return SeedSyncOrchestrator(
        engine.store, engine.remote, engine.activity, item_delay=0, grace_period=0
    )


class TestPushSeedArticles:
    async def test_failures_are_isolated(self, orchestrator, remote):
        remote.fail_ids = {"art-t3", "art-t7"}

        status = await orchestrator.push_seed_articles(ten_articles())

        assert status == SyncStatus(total=10, current=10, error_count=2, is_syncing=False)
        attempted = [c[2] for c in remote.calls_named("upsert")]
        assert attempted == [f"art-t{i}" for i in range(10)]
        summary = orchestrator.activity.entries[0]
        assert summary.category == "sync"
        assert summary.severity == Severity.WARNING
        assert summary.metadata == {"total": 10, "failed": 2}

    async def test_clean_push_records_success(self, orchestrator, remote):
        status = await orchestrator.push_seed_articles()

        assert status.current == status.total == len(SEED_ARTICLES)
        assert status.error_count == 0
        assert orchestrator.activity.entries[0].severity == Severity.SUCCESS
        assert {r["id"] for r in remote.tables["articles"]} == {a["id"] for a in SEED_ARTICLES}

    async def test_progress_notifications(self, orchestrator):
        seen: list[SyncStatus] = []
        orchestrator.add_listener(seen.append)

        await orchestrator.push_seed_articles(ten_articles()[:3])

        assert [(s.current, s.is_syncing) for s in seen] == [
            (0, True),
            (1, True),
            (2, True),
            (3, True),
            (3, False),
        ]

    async def test_listener_errors_do_not_stop_push(self, orchestrator):
        def broken(_status):
            raise RuntimeError("ui bug")

        orchestrator.add_listener(broken)

        status = await orchestrator.push_seed_articles(ten_articles()[:2])

        assert status.current == 2

    async def test_offline_is_noop(self, offline_engine, offline_remote):
        orchestrator = SeedSyncOrchestrator(
            offline_engine.store, offline_remote, offline_engine.activity, 0, 0
        )

        status = await orchestrator.push_seed_articles()

        assert status == SyncStatus()
        assert offline_remote.calls == []
        assert offline_engine.activity.entries == []

    async def test_local_only_warning_logged_once(self, offline_engine, offline_remote, caplog):
        caplog.set_level(logging.WARNING)
        orchestrator = SeedSyncOrchestrator(
            offline_engine.store, offline_remote, offline_engine.activity, 0, 0
        )

        await orchestrator.push_seed_articles()
        await orchestrator.push_seed_articles()
        assert await orchestrator.push_settings() is False

        warnings = [r for r in caplog.records if "not configured" in r.getMessage()]
        assert len(warnings) == 1

    async def test_batch_that_cannot_run_records_error(self, orchestrator, remote):
        items = [{"title": "no id"}]

        status = await orchestrator.push_seed_articles(items)

        assert status.is_syncing is False
        assert orchestrator.activity.entries[0].severity == Severity.ERROR
        assert remote.calls_named("upsert") == []


class TestPushSettings:
    async def test_pushes_full_document(self, orchestrator, remote):
        assert await orchestrator.push_settings() is True

        document = remote.calls_named("upsert_settings")[0][1]
        assert {"brand", "contactInfo", "aiConfig", "hiddenIds", "updated_at"} <= set(document)
        assert orchestrator.activity.entries[0].severity == Severity.SUCCESS

    async def test_failure_is_recorded_not_raised(self, orchestrator, remote):
        remote.fail_settings = True

        assert await orchestrator.push_settings() is False

        entry = orchestrator.activity.entries[0]
        assert entry.severity == Severity.ERROR
        assert entry.category == "sync"


class TestTiming:
    # Slack for timer granularity when comparing loop clock readings.
    TOLERANCE = 0.01

    async def test_grace_period_keeps_syncing_flag(self, engine):
        orchestrator = SeedSyncOrchestrator(
            engine.store, engine.remote, engine.activity, item_delay=0.01, grace_period=0.05
        )
        seen: list[SyncStatus] = []
        orchestrator.add_listener(seen.append)
        loop = asyncio.get_running_loop()
        started = loop.time()

        task = asyncio.create_task(orchestrator.push_seed_articles(ten_articles()[:3]))
        while orchestrator.status.current < 3 and not task.done():
            await asyncio.sleep(0.001)

        assert orchestrator.status.current == orchestrator.status.total == 3
        assert orchestrator.status.is_syncing is True
        assert not task.done()

        status = await task
        elapsed = loop.time() - started

        assert status.is_syncing is False
        assert elapsed >= 3 * 0.01 + 0.05 - self.TOLERANCE
        assert [(s.current, s.is_syncing) for s in seen[-2:]] == [(3, True), (3, False)]

    async def test_item_delay_paces_upserts(self, engine):
        orchestrator = SeedSyncOrchestrator(
            engine.store, engine.remote, engine.activity, item_delay=0.02, grace_period=0
        )
        loop = asyncio.get_running_loop()
        progress_times: dict[int, float] = {}
        orchestrator.add_listener(lambda s: progress_times.setdefault(s.current, loop.time()))

        status = await orchestrator.push_seed_articles(ten_articles()[:3])

        assert status.current == 3
        gaps = [progress_times[i + 1] - progress_times[i] for i in (1, 2)]
        assert all(gap >= 0.02 - self.TOLERANCE for gap in gaps)
