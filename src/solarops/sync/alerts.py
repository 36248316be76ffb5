"""Reconcile vendor alerts into the alert store."""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.orm import Session

from solarops.config.logging import OperationTimer
from solarops.config.settings import Settings
from solarops.db.models.alert import AlertSeverity, AlertStatus
from solarops.db.repositories.alert import AlertRepository
from solarops.db.repositories.plant import PlantRepository
from solarops.sync.engine import BatchWriter, VendorSyncReport
from solarops.sync.normalize import clean_id, parse_timestamp
from solarops.utils.exceptions import ConfigurationError, VendorSyncError
from solarops.vendors.base import TokenStore, VendorAlert, VendorConfig
from solarops.vendors.factory import AdapterFactory, create_adapter
from solarops.vendors.token_store import DatabaseTokenStore

logger = structlog.get_logger(__name__)


def alerts_window_start(vendor: VendorConfig, now: datetime, lookback_days: int) -> datetime:
    """First instant of the alert window for a vendor.

    Vendors may set ``alertsStartDate`` in their credentials. The window never
    reaches further back than ``lookback_days``, and an unparseable start date
    falls back to that limit.
    """
    earliest = now - timedelta(days=lookback_days)
    configured = vendor.credentials.get("alertsStartDate")
    start = parse_timestamp(configured)
    if start is None:
        if configured:
            logger.warning("Invalid alertsStartDate, using lookback limit", alerts_start_date=configured)
        return earliest
    return max(start, earliest)


def normalize_alert(
    alert: VendorAlert, vendor_id: int, plant_id: int, vendor_plant_id: str
) -> dict[str, Any]:
    """Build an alert row for upsert.

    An alert with an end time is resolved; ``grid_down_seconds`` is the
    non-negative gap between start and end when both are known.
    """
    alert_time = parse_timestamp(alert.alert_time)
    end_time = parse_timestamp(alert.end_time)

    grid_down_seconds = None
    if alert_time and end_time:
        grid_down_seconds = max(0, int((end_time - alert_time).total_seconds()))

    severity = (alert.severity or "").upper()
    if severity not in AlertSeverity.__members__:
        severity = AlertSeverity.MEDIUM

    return {
        "vendor_id": vendor_id,
        "plant_id": plant_id,
        "vendor_alert_id": clean_id(alert.external_id),
        "vendor_plant_id": vendor_plant_id,
        "device_type": alert.device_type,
        "title": alert.title or "Alert",
        "description": alert.description,
        "severity": str(severity),
        "status": str(AlertStatus.RESOLVED if end_time else AlertStatus.ACTIVE),
        "alert_time": alert_time,
        "end_time": end_time,
        "grid_down_seconds": grid_down_seconds,
        "payload": alert.metadata or None,
    }


def _alert_key(row: dict[str, Any]) -> tuple[int, str | None]:
    return row["plant_id"], row["vendor_alert_id"]


class AlertSyncEngine:
    """Fetches a vendor's alerts and upserts them against stored plants.

    Alerts are matched to plants through the vendor's plant IDs. Alerts for
    plants that have not been synced yet, or that started before the alert
    window, are skipped. Writes use the same batch and per-row fallback as
    the plant sync.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        adapter_factory: AdapterFactory = create_adapter,
        token_store: TokenStore | None = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.adapter_factory = adapter_factory
        self.alerts = AlertRepository(session)
        self.plants = PlantRepository(session)
        self.token_store = token_store or DatabaseTokenStore(session)

    async def sync(self, vendor: VendorConfig, now: datetime | None = None) -> VendorSyncReport:
        """Sync alerts for one vendor.

        Args:
            vendor: Vendor to sync.
            now: End of the alert window, defaults to the current time.

        Returns:
            Report of synced, created, updated, skipped and failed alerts.

        Raises:
            ConfigurationError: If the vendor has no organization.
            VendorSyncError: If the vendor's alerts cannot be fetched.
        """
        if vendor.org_id is None:
            raise ConfigurationError(
                f"Vendor {vendor.id} is not assigned to an organization; cannot sync alerts"
            )

        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        with structlog.contextvars.bound_contextvars(vendor_id=vendor.id, org_id=vendor.org_id):
            plant_ids = self.plants.get_id_map(vendor.id)
            if not plant_ids:
                logger.info("Vendor has no stored plants, skipping alert sync")
                return VendorSyncReport(vendor_id=vendor.id)

            start = alerts_window_start(vendor, now, self.settings.alert_lookback_days)
            with OperationTimer("vendor alert sync", logger, vendor_type=vendor.vendor_type) as timer:
                alerts = await self._fetch(vendor, start, now)
                report = self._reconcile(vendor, alerts, plant_ids, start)
            report.duration_seconds = timer.duration

            logger.info(
                "Alert sync summary",
                total=report.total,
                synced=report.synced,
                created=report.created,
                updated=report.updated,
                skipped=report.skipped,
                errors=report.error_count,
            )
        return report

    async def _fetch(self, vendor: VendorConfig, start: datetime, end: datetime) -> list[VendorAlert]:
        adapter = self.adapter_factory(vendor, self.settings, self.token_store)
        try:
            async with adapter:
                alerts = await adapter.list_alerts(start, end)
        except Exception as e:
            raise VendorSyncError(
                vendor.id, f"Failed to fetch alerts for vendor {vendor.id}: {e}"
            ) from e

        logger.info("Fetched vendor alerts", count=len(alerts))
        return alerts

    def _reconcile(
        self,
        vendor: VendorConfig,
        alerts: list[VendorAlert],
        plant_ids: dict[str, int],
        start: datetime,
    ) -> VendorSyncReport:
        report = VendorSyncReport(vendor_id=vendor.id, total=len(alerts))
        rows = []
        for alert in alerts:
            vendor_plant_id = clean_id(alert.external_plant_id)
            plant_id = plant_ids.get(vendor_plant_id) if vendor_plant_id else None
            if plant_id is None:
                report.skipped += 1
                continue

            row = normalize_alert(alert, vendor.id, plant_id, vendor_plant_id)
            if row["alert_time"] is not None and row["alert_time"] < start:
                report.skipped += 1
                continue
            rows.append(row)

        if not rows:
            return report

        seen = self.alerts.get_existing_keys(vendor.id, (_alert_key(row) for row in rows))
        writer = BatchWriter(
            self.session,
            self.settings,
            upsert=lambda batch: self.alerts.upsert_many(batch),
            key=_alert_key,
            entity="Alert",
        )
        writer.write(rows, seen, report)
        return report
