"""Plant repository."""

from collections.abc import Iterable

from sqlalchemy import func, select

from solarops.db.models.plant import Plant
from solarops.db.repositories.base import BaseRepository


class PlantRepository(BaseRepository[Plant]):
    """Repository for Plant operations."""

    model = Plant
    natural_key = ("vendor_id", "vendor_plant_id")

    def get_by_vendor_key(self, vendor_id: int, vendor_plant_id: str) -> Plant | None:
        """Get a plant by its natural key.

        Args:
            vendor_id: Owning vendor ID.
            vendor_plant_id: Vendor-assigned plant identifier.

        Returns:
            Plant or None.
        """
        stmt = select(Plant).where(
            Plant.vendor_id == vendor_id,
            Plant.vendor_plant_id == vendor_plant_id,
        )
        return self.session.scalar(stmt)

    def get_by_ids(self, plant_ids: Iterable[int]) -> list[Plant]:
        """Get plants by primary key.

        Args:
            plant_ids: Plant IDs.

        Returns:
            Plants that exist; missing IDs are silently absent.
        """
        ids = list(plant_ids)
        if not ids:
            return []
        stmt = select(Plant).where(Plant.id.in_(ids))
        return list(self.session.scalars(stmt).all())

    def get_by_org(self, org_id: int) -> list[Plant]:
        """Get all plants owned by an organization.

        Args:
            org_id: Organization ID.

        Returns:
            List of plants ordered by name.
        """
        stmt = select(Plant).where(Plant.org_id == org_id).order_by(Plant.name)
        return list(self.session.scalars(stmt).all())

    def get_by_vendor(self, vendor_id: int) -> list[Plant]:
        """Get all plants reported by a vendor.

        Args:
            vendor_id: Vendor ID.

        Returns:
            List of plants ordered by vendor plant ID.
        """
        stmt = select(Plant).where(Plant.vendor_id == vendor_id).order_by(Plant.vendor_plant_id)
        return list(self.session.scalars(stmt).all())

    def get_id_map(self, vendor_id: int) -> dict[str, int]:
        """Map a vendor's plant IDs to stored plant primary keys."""
        stmt = select(Plant.vendor_plant_id, Plant.id).where(Plant.vendor_id == vendor_id)
        return {vendor_plant_id: plant_id for vendor_plant_id, plant_id in self.session.execute(stmt)}

    def count_by_vendor(self, vendor_id: int) -> int:
        """Count plants reported by a vendor."""
        stmt = select(func.count()).select_from(Plant).where(Plant.vendor_id == vendor_id)
        return self.session.scalar(stmt) or 0

    def get_existing_vendor_plant_ids(
        self, vendor_id: int, vendor_plant_ids: Iterable[str | None]
    ) -> set[str]:
        """Find which vendor plant IDs are already stored for a vendor.

        Args:
            vendor_id: Vendor ID.
            vendor_plant_ids: Candidate vendor plant IDs.

        Returns:
            The subset of IDs that already exist.
        """
        ids = [i for i in vendor_plant_ids if i is not None]
        if not ids:
            return set()
        stmt = select(Plant.vendor_plant_id).where(
            Plant.vendor_id == vendor_id,
            Plant.vendor_plant_id.in_(ids),
        )
        return set(self.session.scalars(stmt).all())

    def upsert_many(self, rows: list[dict]) -> None:
        """Insert or update plants keyed on (vendor_id, vendor_plant_id).

        All rows are written by one statement, so they succeed or fail together.

        Args:
            rows: Plant attribute dictionaries sharing the same keys.
        """
        self.upsert_rows(rows)

    def upsert(self, plant_data: dict) -> Plant:
        """Insert or update a single plant.

        Args:
            plant_data: Dictionary of plant attributes.

        Returns:
            The upserted plant.
        """
        self.upsert_many([plant_data])
        return self.get_by_vendor_key(plant_data["vendor_id"], plant_data["vendor_plant_id"])  # type: ignore
