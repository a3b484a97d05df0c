"""Local-first synchronization between SiteData, the local cache and the remote store."""

from .activity import ActivityLog
from .engine import ReconciliationEngine
from .orchestrator import ProgressCallback, SeedSyncOrchestrator
from .reconcile import merge_remote, parse_snapshot, reconcile_collection
from .store import StateStore
from .tasks import BackgroundTasks

__all__ = [
    "ActivityLog",
    "BackgroundTasks",
    "ProgressCallback",
    "ReconciliationEngine",
    "SeedSyncOrchestrator",
    "StateStore",
    "merge_remote",
    "parse_snapshot",
    "reconcile_collection",
]
