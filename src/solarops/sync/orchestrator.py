"""Sync orchestrator to coordinate vendor plant and alert syncs."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import Engine

from solarops.config.settings import Settings
from solarops.db.engine import get_session
from solarops.db.models.organization import Organization
from solarops.db.repositories.alert import AlertRepository
from solarops.db.repositories.plant import PlantRepository
from solarops.db.repositories.vendor import VendorRepository
from solarops.sync.alerts import AlertSyncEngine
from solarops.sync.engine import VendorSyncEngine, VendorSyncReport
from solarops.utils.exceptions import NotFoundError
from solarops.vendors.base import VendorConfig
from solarops.vendors.factory import AdapterFactory, create_adapter

logger = structlog.get_logger(__name__)


@dataclass
class VendorSyncResult:
    """Result of syncing one vendor."""

    vendor_id: int
    vendor_name: str | None
    org_id: int | None
    success: bool
    report: VendorSyncReport | None = None
    error: str | None = None
    duration_seconds: float = 0.0


@dataclass
class SyncSummary:
    """Summary of all vendor syncs in one run."""

    total_vendors: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    plants_synced: int = 0
    plants_created: int = 0
    plants_updated: int = 0
    results: list[VendorSyncResult] = field(default_factory=list)
    duration_seconds: float = 0.0


@dataclass
class AlertSyncSummary:
    """Summary of one alert sync run across vendors."""

    total_vendors: int = 0
    successful: int = 0
    failed: int = 0
    alerts_synced: int = 0
    alerts_created: int = 0
    alerts_updated: int = 0
    results: list[VendorSyncResult] = field(default_factory=list)
    duration_seconds: float = 0.0


def should_sync_org(
    org: Organization,
    now: datetime,
    tz: str | ZoneInfo,
    default_interval: int = 15,
) -> bool:
    """Check whether an organization's scheduled sync is due.

    Syncs run on fixed clock boundaries: a 15 minute interval syncs at :00,
    :15, :30 and :45 in the given timezone.

    Args:
        org: Organization to check.
        now: Current time. Naive values are taken to be UTC.
        tz: Timezone the schedule is defined in.
        default_interval: Interval used when the organization has none.

    Returns:
        True if auto sync is enabled and ``now`` falls on an interval boundary.
    """
    if not org.auto_sync_enabled:
        return False

    interval = org.sync_interval_minutes or default_interval
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    minute = now.astimezone(zone).minute
    return minute % interval == 0


class SyncOrchestrator:
    """Runs vendor plant and alert syncs, one session per vendor."""

    def __init__(
        self,
        engine: Engine,
        settings: Settings,
        adapter_factory: AdapterFactory = create_adapter,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            engine: SQLAlchemy engine.
            settings: Application settings.
            adapter_factory: Builds vendor adapters.
        """
        self.engine = engine
        self.settings = settings
        self.adapter_factory = adapter_factory

    async def _run(self, config: VendorConfig) -> VendorSyncReport:
        """Sync one vendor in its own transaction."""
        with get_session(self.engine) as session:
            sync_engine = VendorSyncEngine(session, self.settings, adapter_factory=self.adapter_factory)
            report = await sync_engine.sync(config)
            if report.synced > 0:
                VendorRepository(session).mark_synced(config.id, datetime.now(UTC))
        return report

    async def _run_alerts(self, config: VendorConfig) -> VendorSyncReport:
        """Sync one vendor's alerts in its own transaction."""
        with get_session(self.engine) as session:
            alert_engine = AlertSyncEngine(session, self.settings, adapter_factory=self.adapter_factory)
            report = await alert_engine.sync(config)
            if report.synced > 0:
                VendorRepository(session).mark_alerts_synced(config.id, datetime.now(UTC))
        return report

    async def _run_each(
        self,
        configs: list[VendorConfig],
        run: Callable[[VendorConfig], Awaitable[VendorSyncReport]],
    ) -> list[VendorSyncResult]:
        """Run ``run`` for each vendor in turn, recording failures instead of raising."""
        results = []
        for config in configs:
            try:
                report = await run(config)
            except Exception as e:
                logger.error("Vendor sync failed", vendor_id=config.id, error=str(e))
                results.append(
                    VendorSyncResult(
                        vendor_id=config.id,
                        vendor_name=config.name,
                        org_id=config.org_id,
                        success=False,
                        error=str(e),
                    )
                )
                continue

            results.append(
                VendorSyncResult(
                    vendor_id=config.id,
                    vendor_name=config.name,
                    org_id=config.org_id,
                    success=True,
                    report=report,
                    duration_seconds=report.duration_seconds,
                )
            )
        return results

    def _load_vendor(self, vendor_id: int) -> VendorConfig:
        with get_session(self.engine) as session:
            vendor = VendorRepository(session).get_by_id(vendor_id)
            if vendor is None:
                raise NotFoundError(f"Vendor {vendor_id} not found")
            return VendorConfig.model_validate(vendor)

    async def sync_vendor(self, vendor_id: int) -> VendorSyncResult:
        """Sync a single vendor.

        Args:
            vendor_id: Vendor ID.

        Returns:
            Result of the sync.

        Raises:
            NotFoundError: If the vendor does not exist.
            ConfigurationError: If the vendor is not assigned to an organization.
            VendorSyncError: If the vendor's plant list cannot be fetched.
        """
        config = self._load_vendor(vendor_id)
        report = await self._run(config)
        return VendorSyncResult(
            vendor_id=config.id,
            vendor_name=config.name,
            org_id=config.org_id,
            success=True,
            report=report,
            duration_seconds=report.duration_seconds,
        )

    async def sync_all(self, now: datetime | None = None, force: bool = False) -> SyncSummary:
        """Sync every active vendor whose organization is due.

        A vendor that fails is recorded in its result and the run continues
        with the next vendor.

        Args:
            now: Time used for the schedule check, defaults to the current time.
            force: Sync every active vendor regardless of schedule.

        Returns:
            Summary of sync operations.
        """
        start_time = datetime.now(UTC)
        now = now or start_time
        logger.info("Starting scheduled vendor sync", force=force)

        with get_session(self.engine) as session:
            vendors = VendorRepository(session).get_active_with_org()
            due = [
                VendorConfig.model_validate(v)
                for v in vendors
                if force
                or should_sync_org(
                    v.organization,
                    now,
                    self.settings.sync_timezone,
                    self.settings.default_sync_interval_minutes,
                )
            ]
            skipped = len(vendors) - len(due)

        summary = SyncSummary(total_vendors=len(due), skipped=skipped)
        if not due:
            logger.info("No vendors due for sync", skipped=skipped)
            return summary

        summary.results = await self._run_each(due, self._run)
        for result in summary.results:
            if not result.success:
                summary.failed += 1
                continue
            summary.successful += 1
            summary.plants_synced += result.report.synced
            summary.plants_created += result.report.created
            summary.plants_updated += result.report.updated

        summary.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            "Sync complete",
            vendors=summary.total_vendors,
            successful=summary.successful,
            failed=summary.failed,
            plants=summary.plants_synced,
            duration=f"{summary.duration_seconds:.1f}s",
        )
        return summary

    async def sync_vendor_alerts(self, vendor_id: int) -> VendorSyncResult:
        """Sync alerts for a single vendor.

        An inactive vendor is reported as a successful sync with nothing
        fetched.

        Raises:
            NotFoundError: If the vendor does not exist.
            ConfigurationError: If the vendor is not assigned to an organization.
            VendorSyncError: If the vendor's alerts cannot be fetched.
        """
        config = self._load_vendor(vendor_id)
        result = VendorSyncResult(
            vendor_id=config.id, vendor_name=config.name, org_id=config.org_id, success=True
        )
        if not config.is_active:
            logger.info("Vendor inactive, skipping alert sync", vendor_id=config.id)
            result.report = VendorSyncReport(vendor_id=config.id)
            return result

        result.report = await self._run_alerts(config)
        result.duration_seconds = result.report.duration_seconds
        return result

    async def sync_all_alerts(self) -> AlertSyncSummary:
        """Sync alerts for every active vendor assigned to an organization.

        Alert syncs do not follow the organization schedule. Failures are
        isolated per vendor as in ``sync_all``.
        """
        start_time = datetime.now(UTC)
        logger.info("Starting alert sync")

        with get_session(self.engine) as session:
            configs = [VendorConfig.model_validate(v) for v in VendorRepository(session).get_active_with_org()]

        summary = AlertSyncSummary(total_vendors=len(configs))
        summary.results = await self._run_each(configs, self._run_alerts)
        for result in summary.results:
            if not result.success:
                summary.failed += 1
                continue
            summary.successful += 1
            summary.alerts_synced += result.report.synced
            summary.alerts_created += result.report.created
            summary.alerts_updated += result.report.updated

        summary.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            "Alert sync complete",
            vendors=summary.total_vendors,
            successful=summary.successful,
            failed=summary.failed,
            alerts=summary.alerts_synced,
            duration=f"{summary.duration_seconds:.1f}s",
        )
        return summary

    def get_sync_status(self) -> list[dict]:
        """Get sync status for all vendors.

        Returns:
            List of sync status dictionaries.
        """
        with get_session(self.engine) as session:
            plant_repo = PlantRepository(session)
            alert_repo = AlertRepository(session)
            return [
                {
                    "vendor_id": vendor.id,
                    "vendor_name": vendor.name,
                    "vendor_type": vendor.vendor_type,
                    "org_id": vendor.org_id,
                    "is_active": vendor.is_active,
                    "last_synced_at": vendor.last_synced_at,
                    "plants": plant_repo.count_by_vendor(vendor.id),
                    "last_alert_synced_at": vendor.last_alert_synced_at,
                    "alerts": alert_repo.count_by_vendor(vendor.id),
                }
                for vendor in VendorRepository(session).get_all()
            ]
