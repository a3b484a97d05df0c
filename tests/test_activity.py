"""ActivityLog tests: bounded list, cache mirroring, remote mirroring."""

from datetime import datetime, timedelta, timezone

from studio_sync.models import ActivityEntry, Severity
from studio_sync.sync import ActivityLog, BackgroundTasks

from conftest import ACTIVITY_KEY


def make_log(cache, remote, limit=50) -> ActivityLog:
    return ActivityLog(cache, ACTIVITY_KEY, remote, BackgroundTasks(), limit=limit)


class TestActivityLog:
    def test_bounded_to_fifty(self, cache, offline_remote):
        log = make_log(cache, offline_remote)

        for i in range(60):
            log.info(f"event {i}", "system")

        entries = log.entries
        assert len(entries) == 50
        assert entries[0].label == "event 59"
        assert entries[-1].label == "event 10"

    def test_persists_and_reloads(self, cache, offline_remote):
        log = make_log(cache, offline_remote)
        log.success("Saved", "crm", {"id": "c-1"})

        reloaded = make_log(cache, offline_remote)

        assert [e.label for e in reloaded.entries] == ["Saved"]
        assert reloaded.entries[0].metadata == {"id": "c-1"}
        assert reloaded.entries[0].severity == Severity.SUCCESS

    def test_corrupted_cache_starts_empty(self, cache, offline_remote):
        cache.data[ACTIVITY_KEY] = "[{broken"

        assert make_log(cache, offline_remote).entries == []

    def test_error_shortcut_records_message(self, cache, offline_remote):
        log = make_log(cache, offline_remote)

        entry = log.error("Push failed", "sync", RuntimeError("timeout"))

        assert entry.severity == Severity.ERROR
        assert entry.metadata == {"message": "timeout"}

    def test_entries_returns_copy(self, cache, offline_remote):
        log = make_log(cache, offline_remote)
        log.info("a", "system")

        log.entries.clear()

        assert len(log.entries) == 1

    async def test_mirrors_to_remote_when_configured(self, cache, remote):
        log = make_log(cache, remote)

        entry = log.warning("Careful", "sync")
        await log.tasks.drain()

        assert remote.calls == [("insert_activity", entry.id)]

    async def test_no_remote_calls_when_offline(self, cache, offline_remote):
        log = make_log(cache, offline_remote)

        log.info("Local", "system")
        await log.tasks.drain()

        assert offline_remote.calls == []

    def test_adopt_only_when_empty(self, cache, offline_remote):
        now = datetime.now(timezone.utc)
        older = ActivityEntry(label="older", category="crm", timestamp=now - timedelta(hours=1))
        newer = ActivityEntry(label="newer", category="crm", timestamp=now)

        log = make_log(cache, offline_remote)
        log.adopt([older, newer])
        assert [e.label for e in log.entries] == ["newer", "older"]

        log.adopt([ActivityEntry(label="ignored", category="crm")])
        assert [e.label for e in log.entries] == ["newer", "older"]
