"""Work order operations: creation, plant attachment and status changes."""

from collections.abc import Callable, Iterable
from enum import StrEnum

import structlog
from sqlalchemy.orm import Session

from solarops.auth.permissions import DEFAULT_POLICY, PermissionPolicy, Principal
from solarops.db.models.plant import Plant
from solarops.db.models.work_order import WorkOrder, WorkOrderPlant
from solarops.db.repositories.plant import PlantRepository
from solarops.db.repositories.work_order import WorkOrderRepository
from solarops.utils.exceptions import (
    NotFoundError,
    OrganizationMismatchError,
    ValidationError,
)
from solarops.workorders.status_machine import (
    WorkOrderStatus,
    get_next_valid_statuses,
    require_transition,
)

logger = structlog.get_logger(__name__)

EfficiencySignal = Callable[[int], None]


class WorkOrderPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def _unique(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class WorkOrderService:
    """Work order use cases on top of the repositories."""

    def __init__(
        self,
        session: Session,
        policy: PermissionPolicy = DEFAULT_POLICY,
        efficiency_signal: EfficiencySignal | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: Database session.
            policy: Access policy used to authorize callers.
            efficiency_signal: Called with the work order ID when work starts.
        """
        self.session = session
        self.policy = policy
        self.efficiency_signal = efficiency_signal
        self.work_orders = WorkOrderRepository(session)
        self.plants = PlantRepository(session)

    def get_work_order(self, work_order_id: int) -> WorkOrder:
        work_order = self.work_orders.get_by_id(work_order_id)
        if work_order is None:
            raise NotFoundError(f"Work order {work_order_id} not found")
        return work_order

    def list_work_orders(self, actor: Principal) -> list[WorkOrder]:
        """List work orders visible to the actor.

        ORG accounts only see work orders that include their organization's plants.
        """
        self.policy.require(actor, "work_orders", "read")
        if actor.is_org_scoped:
            if actor.org_id is None:
                return []
            return self.work_orders.list_for_org(actor.org_id)
        return self.work_orders.list_all()

    def _load_single_org_plants(self, plant_ids: list[int]) -> tuple[list[Plant], int]:
        """Load plants and check they all belong to one organization.

        Returns:
            The plants and their shared organization ID.
        """
        if not plant_ids:
            raise ValidationError("At least one plant is required")

        plants = self.plants.get_by_ids(plant_ids)
        if len(plants) != len(plant_ids):
            found = {p.id for p in plants}
            missing = [pid for pid in plant_ids if pid not in found]
            raise NotFoundError(f"Plants not found: {missing}")

        org_ids = {p.org_id for p in plants}
        if len(org_ids) > 1:
            raise OrganizationMismatchError("All plants must belong to the same organization")

        return plants, org_ids.pop()

    def create_work_order(
        self,
        actor: Principal,
        title: str,
        plant_ids: Iterable[int],
        description: str | None = None,
        priority: WorkOrderPriority | str = WorkOrderPriority.MEDIUM,
        location: dict | None = None,
    ) -> WorkOrder:
        """Create a work order for plants of a single organization.

        Plants already attached to another work order are moved to this one.

        Args:
            actor: Account creating the work order.
            title: Work order title.
            plant_ids: Plants to attach.
            description: Optional description.
            priority: LOW, MEDIUM or HIGH.
            location: Optional location details.

        Returns:
            The new work order, in OPEN status.
        """
        self.policy.require(actor, "work_orders", "create")

        if not title or not title.strip():
            raise ValidationError("Title is required")
        try:
            priority = WorkOrderPriority(priority)
        except ValueError:
            raise ValidationError(f"Invalid priority: {priority}") from None

        ids = _unique(plant_ids)
        _, org_id = self._load_single_org_plants(ids)

        work_order = self.work_orders.add(
            WorkOrder(
                title=title.strip(),
                description=description,
                priority=priority.value,
                status=WorkOrderStatus.OPEN.value,
                org_id=org_id,
                location=location,
                created_by=actor.account_id,
            )
        )

        moved = self.work_orders.deactivate_links(ids)
        self.work_orders.add_all(
            [WorkOrderPlant(work_order_id=work_order.id, plant_id=pid, is_active=True) for pid in ids]
        )

        logger.info(
            "Work order created",
            work_order_id=work_order.id,
            org_id=org_id,
            plants=len(ids),
            reassigned=moved,
        )
        return work_order

    def _check_same_org(self, work_order: WorkOrder, plants: list[Plant], org_id: int) -> None:
        current_orgs = {p.org_id for p in self.work_orders.get_active_plants(work_order.id)}
        if work_order.org_id is not None:
            current_orgs.add(work_order.org_id)
        if current_orgs and current_orgs != {org_id}:
            raise OrganizationMismatchError(
                f"Plants {[p.id for p in plants]} belong to organization {org_id}, "
                f"work order {work_order.id} belongs to {sorted(current_orgs)}"
            )

    def _activate(self, work_order: WorkOrder, plant_ids: list[int]) -> int:
        """Bind plants to a work order, reusing inactive bindings. Returns bindings inserted."""
        existing = {link.plant_id: link for link in self.work_orders.get_links(work_order.id)}

        # A plant can only be active on one work order
        self.work_orders.deactivate_links(plant_ids, exclude_work_order_id=work_order.id)

        inserted = 0
        for plant_id in plant_ids:
            link = existing.get(plant_id)
            if link is None:
                self.session.add(
                    WorkOrderPlant(work_order_id=work_order.id, plant_id=plant_id, is_active=True)
                )
                inserted += 1
            elif not link.is_active:
                link.is_active = True
        self.session.flush()
        return inserted

    def attach_plants(self, actor: Principal, work_order_id: int, plant_ids: Iterable[int]) -> WorkOrder:
        """Attach plants to an existing work order.

        Raises:
            OrganizationMismatchError: If the plants belong to a different organization.
        """
        self.policy.require(actor, "work_orders", "update")
        work_order = self.get_work_order(work_order_id)

        ids = _unique(plant_ids)
        plants, org_id = self._load_single_org_plants(ids)
        self._check_same_org(work_order, plants, org_id)

        inserted = self._activate(work_order, ids)
        if work_order.org_id is None:
            work_order.org_id = org_id
        self.session.flush()

        logger.info("Plants attached", work_order_id=work_order_id, plants=len(ids), inserted=inserted)
        self._signal_efficiency(work_order_id)
        return work_order

    def detach_plants(self, actor: Principal, work_order_id: int, plant_ids: Iterable[int]) -> WorkOrder:
        """Detach plants from a work order. Bindings are kept, marked inactive."""
        self.policy.require(actor, "work_orders", "update")
        work_order = self.get_work_order(work_order_id)

        detached = self.work_orders.deactivate_links(_unique(plant_ids), work_order_id=work_order_id)
        logger.info("Plants detached", work_order_id=work_order_id, detached=detached)
        return work_order

    def replace_plants(self, actor: Principal, work_order_id: int, plant_ids: Iterable[int]) -> WorkOrder:
        """Make ``plant_ids`` the exact set of active plants on a work order."""
        self.policy.require(actor, "work_orders", "update")
        work_order = self.get_work_order(work_order_id)

        ids = _unique(plant_ids)
        _, org_id = self._load_single_org_plants(ids)

        selected = set(ids)
        to_deactivate = [
            link.plant_id
            for link in self.work_orders.get_links(work_order_id)
            if link.is_active and link.plant_id not in selected
        ]
        self.work_orders.deactivate_links(to_deactivate, work_order_id=work_order_id)
        inserted = self._activate(work_order, ids)

        # The work order follows its plants' organization
        work_order.org_id = org_id
        self.session.flush()

        logger.info(
            "Work order plants replaced",
            work_order_id=work_order_id,
            plants=len(ids),
            inserted=inserted,
            deactivated=len(to_deactivate),
        )
        return work_order

    def next_statuses(self, work_order_id: int) -> list[WorkOrderStatus]:
        """Statuses the work order may move to next."""
        return get_next_valid_statuses(self.get_work_order(work_order_id).status)

    def change_status(
        self, actor: Principal, work_order_id: int, requested: WorkOrderStatus | str
    ) -> WorkOrder:
        """Move a work order to a new status.

        Raises:
            InvalidTransitionError: If the transition is not allowed. Nothing is written.
        """
        self.policy.require(actor, "work_orders", "update")
        work_order = self.get_work_order(work_order_id)

        previous = work_order.status
        new_status = require_transition(previous, requested)

        work_order.status = new_status.value
        self.session.flush()
        logger.info(
            "Work order status changed",
            work_order_id=work_order_id,
            previous=previous,
            status=new_status.value,
        )

        if new_status == WorkOrderStatus.IN_PROGRESS:
            self._signal_efficiency(work_order_id)
        return work_order

    def delete_work_order(self, actor: Principal, work_order_id: int) -> None:
        self.policy.require(actor, "work_orders", "delete")
        self.work_orders.delete(self.get_work_order(work_order_id))
        logger.info("Work order deleted", work_order_id=work_order_id)

    def _signal_efficiency(self, work_order_id: int) -> None:
        """Notify the efficiency collaborator; its failures never fail the caller."""
        if self.efficiency_signal is None:
            return
        try:
            self.efficiency_signal(work_order_id)
        except Exception as e:
            logger.warning(
                "Efficiency recomputation signal failed",
                work_order_id=work_order_id,
                error=str(e),
            )
