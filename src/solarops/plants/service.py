"""Plant listing and deletion."""

import structlog
from sqlalchemy.orm import Session

from solarops.auth.permissions import DEFAULT_POLICY, PermissionPolicy, Principal
from solarops.db.models.plant import Plant
from solarops.db.repositories.plant import PlantRepository
from solarops.db.repositories.work_order import WorkOrderRepository
from solarops.utils.exceptions import NotFoundError, PermissionDeniedError, PlantInUseError

logger = structlog.get_logger(__name__)


class PlantService:
    """Plant use cases. Sync never deletes plants; only this service does."""

    def __init__(self, session: Session, policy: PermissionPolicy = DEFAULT_POLICY) -> None:
        self.session = session
        self.policy = policy
        self.plants = PlantRepository(session)
        self.work_orders = WorkOrderRepository(session)

    def list_plants(self, actor: Principal, org_id: int | None = None) -> list[Plant]:
        """List plants, optionally for one organization.

        ORG accounts are always limited to their own organization.

        Raises:
            PermissionDeniedError: If an ORG account asks for another organization.
        """
        self.policy.require(actor, "plants", "read")

        if actor.is_org_scoped:
            if org_id is not None and org_id != actor.org_id:
                raise PermissionDeniedError("Cannot list plants of another organization")
            if actor.org_id is None:
                return []
            return self.plants.get_by_org(actor.org_id)

        if org_id is not None:
            return self.plants.get_by_org(org_id)
        return self.plants.get_all()

    def delete_plant(self, actor: Principal, plant_id: int) -> None:
        """Delete a plant that no active work order references.

        Raises:
            NotFoundError: If the plant does not exist.
            PlantInUseError: If an active work order binding references the plant.
        """
        self.policy.require(actor, "plants", "delete")

        plant = self.plants.get_by_id(plant_id)
        if plant is None:
            raise NotFoundError(f"Plant {plant_id} not found")

        if self.work_orders.has_active_link(plant_id):
            raise PlantInUseError(f"Plant {plant_id} is attached to an active work order")

        self.plants.delete(plant)
        logger.info("Plant deleted", plant_id=plant_id, vendor_id=plant.vendor_id)
