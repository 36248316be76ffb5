"""Alert repository."""

from collections.abc import Iterable

from sqlalchemy import func, select, tuple_

from solarops.db.models.alert import Alert, AlertStatus
from solarops.db.repositories.base import BaseRepository


class AlertRepository(BaseRepository[Alert]):
    """Repository for Alert operations."""

    model = Alert
    natural_key = ("vendor_id", "plant_id", "vendor_alert_id")

    def upsert_many(self, rows: list[dict]) -> None:
        """Insert or update alerts keyed on (vendor_id, plant_id, vendor_alert_id)."""
        self.upsert_rows(rows)

    def get_by_vendor_key(self, vendor_id: int, plant_id: int, vendor_alert_id: str) -> Alert | None:
        stmt = select(Alert).where(
            Alert.vendor_id == vendor_id,
            Alert.plant_id == plant_id,
            Alert.vendor_alert_id == vendor_alert_id,
        )
        return self.session.scalar(stmt)

    def get_existing_keys(
        self, vendor_id: int, keys: Iterable[tuple[int, str | None]]
    ) -> set[tuple[int, str]]:
        """Find which (plant_id, vendor_alert_id) pairs are already stored.

        Args:
            vendor_id: Vendor ID.
            keys: Candidate (plant_id, vendor_alert_id) pairs.

        Returns:
            The subset of pairs that already exist.
        """
        pairs = [k for k in keys if k[1] is not None]
        if not pairs:
            return set()
        stmt = select(Alert.plant_id, Alert.vendor_alert_id).where(
            Alert.vendor_id == vendor_id,
            tuple_(Alert.plant_id, Alert.vendor_alert_id).in_(pairs),
        )
        return {(plant_id, alert_id) for plant_id, alert_id in self.session.execute(stmt)}

    def get_by_plant(self, plant_id: int, status: AlertStatus | None = None) -> list[Alert]:
        """Get a plant's alerts, newest first.

        Args:
            plant_id: Plant ID.
            status: Only return alerts in this status.
        """
        stmt = select(Alert).where(Alert.plant_id == plant_id)
        if status is not None:
            stmt = stmt.where(Alert.status == status)
        stmt = stmt.order_by(Alert.alert_time.desc(), Alert.id.desc())
        return list(self.session.scalars(stmt).all())

    def count_by_vendor(self, vendor_id: int) -> int:
        stmt = select(func.count()).select_from(Alert).where(Alert.vendor_id == vendor_id)
        return self.session.scalar(stmt) or 0
