"""Work order repository."""

from collections.abc import Iterable

from sqlalchemy import select, update

from solarops.db.models.plant import Plant
from solarops.db.models.work_order import WorkOrder, WorkOrderPlant
from solarops.db.repositories.base import BaseRepository


class WorkOrderRepository(BaseRepository[WorkOrder]):
    """Repository for WorkOrder and WorkOrderPlant operations."""

    model = WorkOrder

    def list_all(self) -> list[WorkOrder]:
        """Get all work orders, newest first."""
        stmt = select(WorkOrder).order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
        return list(self.session.scalars(stmt).all())

    def list_for_org(self, org_id: int) -> list[WorkOrder]:
        """Get work orders that include any plant of an organization, newest first.

        Args:
            org_id: Organization ID.

        Returns:
            List of work orders.
        """
        touching = (
            select(WorkOrderPlant.work_order_id)
            .join(Plant, Plant.id == WorkOrderPlant.plant_id)
            .where(Plant.org_id == org_id)
        )
        stmt = (
            select(WorkOrder)
            .where(WorkOrder.id.in_(touching))
            .order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get_links(self, work_order_id: int) -> list[WorkOrderPlant]:
        """Get every plant binding of a work order, active or not.

        Args:
            work_order_id: Work order ID.

        Returns:
            List of bindings.
        """
        stmt = select(WorkOrderPlant).where(WorkOrderPlant.work_order_id == work_order_id)
        return list(self.session.scalars(stmt).all())

    def get_active_plants(self, work_order_id: int) -> list[Plant]:
        """Get plants actively attached to a work order."""
        stmt = (
            select(Plant)
            .join(WorkOrderPlant, WorkOrderPlant.plant_id == Plant.id)
            .where(
                WorkOrderPlant.work_order_id == work_order_id,
                WorkOrderPlant.is_active.is_(True),
            )
        )
        return list(self.session.scalars(stmt).all())

    def has_active_link(self, plant_id: int) -> bool:
        """Check whether a plant is attached to any work order.

        Args:
            plant_id: Plant ID.

        Returns:
            True if an active binding exists.
        """
        stmt = select(WorkOrderPlant.id).where(
            WorkOrderPlant.plant_id == plant_id,
            WorkOrderPlant.is_active.is_(True),
        )
        return self.session.scalar(stmt.limit(1)) is not None

    def deactivate_links(
        self,
        plant_ids: Iterable[int],
        work_order_id: int | None = None,
        exclude_work_order_id: int | None = None,
    ) -> int:
        """Deactivate active bindings for plants.

        Args:
            plant_ids: Plants whose bindings are deactivated.
            work_order_id: Restrict to one work order.
            exclude_work_order_id: Leave this work order's bindings untouched.

        Returns:
            Number of bindings deactivated.
        """
        ids = list(plant_ids)
        if not ids:
            return 0

        stmt = (
            update(WorkOrderPlant)
            .where(
                WorkOrderPlant.plant_id.in_(ids),
                WorkOrderPlant.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        if work_order_id is not None:
            stmt = stmt.where(WorkOrderPlant.work_order_id == work_order_id)
        if exclude_work_order_id is not None:
            stmt = stmt.where(WorkOrderPlant.work_order_id != exclude_work_order_id)

        result = self.session.execute(stmt)
        self.session.flush()
        return result.rowcount or 0
