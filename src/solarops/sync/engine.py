"""Reconcile a vendor's plant inventory into the plant store."""

from collections.abc import Callable, Hashable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.orm import Session

from solarops.config.logging import OperationTimer
from solarops.config.settings import Settings
from solarops.db.repositories.plant import PlantRepository
from solarops.sync.normalize import normalize_plant
from solarops.utils.exceptions import ConfigurationError, VendorSyncError
from solarops.vendors.base import TokenStore, VendorConfig, VendorPlant
from solarops.vendors.factory import AdapterFactory, create_adapter
from solarops.vendors.token_store import DatabaseTokenStore

logger = structlog.get_logger(__name__)

MISSING_ID_LABEL = "<missing>"


@dataclass
class VendorSyncReport:
    """Outcome of one vendor sync.

    ``skipped`` counts records left out on purpose, such as alerts for
    plants that are not stored yet. They are not errors.
    """

    vendor_id: int
    total: int = 0
    synced: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    error_count: int = 0
    batches: int = 0
    failed_batches: int = 0
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BatchWriter:
    """Upserts rows in SAVEPOINT batches, retrying a failed batch row by row.

    ``key`` identifies a row; keys already in ``seen`` count as updates and
    new keys as creates. A row whose key is missing is labelled
    ``<missing>`` in the report.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        upsert: Callable[[list[dict]], None],
        key: Callable[[dict], Hashable | None],
        entity: str,
    ) -> None:
        self.session = session
        self.settings = settings
        self.upsert = upsert
        self.key = key
        self.entity = entity

    def write(self, rows: list[dict], seen: set, report: VendorSyncReport) -> None:
        batch_size = self.settings.sync_batch_size
        for start in range(0, len(rows), batch_size):
            batch = rows[start : start + batch_size]
            batch_number = start // batch_size + 1
            report.batches += 1

            try:
                with self.session.begin_nested():
                    self.upsert(batch)
            except Exception as e:
                report.failed_batches += 1
                logger.warning(
                    "Batch upsert failed, retrying rows individually",
                    entity=self.entity,
                    batch=batch_number,
                    size=len(batch),
                    error=error_message(e, self.settings.error_message_max_length),
                )
                self._write_individually(batch, seen, report)
            else:
                self._count(batch, seen, report)
                logger.debug("Batch upserted", entity=self.entity, batch=batch_number, size=len(batch))

    def _write_individually(self, batch: list[dict], seen: set, report: VendorSyncReport) -> None:
        for row in batch:
            try:
                with self.session.begin_nested():
                    self.upsert([row])
            except Exception as e:
                label = self._label(row)
                message = error_message(e, self.settings.error_message_max_length)
                logger.warning("Row upsert failed", entity=self.entity, key=label, error=message)

                report.error_count += 1
                if len(report.errors) < self.settings.max_report_errors:
                    report.errors.append(f"{self.entity} {label}: {message}")
            else:
                self._count([row], seen, report)

    def _label(self, row: dict) -> str:
        key = self.key(row)
        if isinstance(key, tuple):
            key = key[-1]
        return str(key) if key else MISSING_ID_LABEL

    def _count(self, rows: list[dict], seen: set, report: VendorSyncReport) -> None:
        for row in rows:
            key = self.key(row)
            if key in seen:
                report.updated += 1
            else:
                report.created += 1
                seen.add(key)
            report.synced += 1


def error_message(error: Exception, max_length: int) -> str:
    """First line of an error, truncated to ``max_length``."""
    # DBAPI errors carry the driver message without the SQL statement
    message = str(getattr(error, "orig", None) or error).strip()
    first_line = message.splitlines()[0] if message else type(error).__name__
    return first_line[:max_length]


class VendorSyncEngine:
    """Fetches plants through a vendor adapter and upserts them in batches.

    Each batch is written inside its own SAVEPOINT. When a batch fails it is
    rolled back and its plants are retried one at a time, so a single bad
    record only costs itself. The engine never commits; the caller owns the
    transaction.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        adapter_factory: AdapterFactory = create_adapter,
        plant_repo: PlantRepository | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            session: Database session.
            settings: Application settings.
            adapter_factory: Builds the adapter for a vendor config.
            plant_repo: Plant repository, defaults to one on ``session``.
            token_store: Token storage passed to adapters, defaults to the
                vendors table.
        """
        self.session = session
        self.settings = settings
        self.adapter_factory = adapter_factory
        self.plants = plant_repo or PlantRepository(session)
        self.token_store = token_store or DatabaseTokenStore(session)

    async def sync(self, vendor: VendorConfig) -> VendorSyncReport:
        """Sync the full plant inventory of one vendor.

        Args:
            vendor: Vendor to sync.

        Returns:
            Report of synced, created, updated and failed plants.

        Raises:
            ConfigurationError: If the vendor has no organization. Nothing is
                fetched or written.
            VendorSyncError: If the vendor's plant list cannot be fetched.
                Nothing is written.
        """
        if vendor.org_id is None:
            raise ConfigurationError(
                f"Vendor {vendor.id} is not assigned to an organization; cannot sync plants"
            )

        with structlog.contextvars.bound_contextvars(vendor_id=vendor.id, org_id=vendor.org_id):
            with OperationTimer("vendor plant sync", logger, vendor_type=vendor.vendor_type) as timer:
                vendor_plants = await self._fetch(vendor)
                report = self._reconcile(vendor, vendor_plants)
            report.duration_seconds = timer.duration

            logger.info(
                "Vendor sync summary",
                total=report.total,
                synced=report.synced,
                created=report.created,
                updated=report.updated,
                errors=report.error_count,
            )
        return report

    async def _fetch(self, vendor: VendorConfig) -> list[VendorPlant]:
        adapter = self.adapter_factory(vendor, self.settings, self.token_store)
        try:
            async with adapter:
                plants = await adapter.list_plants()
        except Exception as e:
            raise VendorSyncError(
                vendor.id, f"Failed to fetch plants for vendor {vendor.id}: {e}"
            ) from e

        logger.info("Fetched vendor plants", count=len(plants))
        return plants

    def _reconcile(self, vendor: VendorConfig, vendor_plants: list[VendorPlant]) -> VendorSyncReport:
        refreshed_at = datetime.now(UTC)
        rows = [normalize_plant(p, vendor, refreshed_at) for p in vendor_plants]
        report = VendorSyncReport(vendor_id=vendor.id, total=len(rows))
        if not rows:
            logger.info("Vendor reported no plants")
            return report

        # Only used to split created/updated in the report
        seen = self.plants.get_existing_vendor_plant_ids(
            vendor.id, (row["vendor_plant_id"] for row in rows)
        )
        writer = BatchWriter(
            self.session,
            self.settings,
            upsert=lambda batch: self.plants.upsert_many(batch),
            key=lambda row: row["vendor_plant_id"],
            entity="Plant",
        )
        writer.write(rows, seen, report)
        return report
