"""Vendor plant and alert synchronization."""

from solarops.sync.alerts import AlertSyncEngine
from solarops.sync.engine import BatchWriter, VendorSyncEngine, VendorSyncReport
from solarops.sync.orchestrator import AlertSyncSummary, SyncOrchestrator, SyncSummary, VendorSyncResult

__all__ = [
    "AlertSyncEngine",
    "AlertSyncSummary",
    "BatchWriter",
    "SyncOrchestrator",
    "SyncSummary",
    "VendorSyncEngine",
    "VendorSyncReport",
    "VendorSyncResult",
]
