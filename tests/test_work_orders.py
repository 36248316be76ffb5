"""Tests for the work order service."""

from unittest.mock import MagicMock

import pytest

from solarops.db.models import WorkOrderPlant
from solarops.db.repositories import WorkOrderRepository
from solarops.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    OrganizationMismatchError,
    PermissionDeniedError,
    ValidationError,
)
from solarops.workorders.service import WorkOrderService
from solarops.workorders.status_machine import WorkOrderStatus


@pytest.fixture
def efficiency_signal():
    return MagicMock()


@pytest.fixture
def service(test_session, efficiency_signal):
    return WorkOrderService(test_session, efficiency_signal=efficiency_signal)


def active_bindings(session, plant_id: int) -> list[int]:
    return [
        link.work_order_id
        for link in session.query(WorkOrderPlant).filter_by(plant_id=plant_id, is_active=True)
    ]


class TestCreateWorkOrder:
    """Test create_work_order."""

    def test_create(self, service, superadmin, make_plant, organization):
        plants = [make_plant(), make_plant()]

        work_order = service.create_work_order(
            superadmin, "Clean panels", [p.id for p in plants], description="Quarterly", priority="HIGH"
        )

        assert work_order.status == "OPEN"
        assert work_order.priority == "HIGH"
        assert work_order.org_id == organization.id
        assert work_order.created_by == "admin-1"
        assert sorted(work_order.active_plant_ids) == sorted(p.id for p in plants)

    def test_requires_plants(self, service, superadmin):
        with pytest.raises(ValidationError):
            service.create_work_order(superadmin, "Nothing", [])

    def test_requires_title(self, service, superadmin, make_plant):
        with pytest.raises(ValidationError):
            service.create_work_order(superadmin, "  ", [make_plant().id])

    def test_invalid_priority(self, service, superadmin, make_plant):
        with pytest.raises(ValidationError):
            service.create_work_order(superadmin, "Fix", [make_plant().id], priority="URGENT")

    def test_missing_plant(self, service, superadmin, make_plant):
        with pytest.raises(NotFoundError):
            service.create_work_order(superadmin, "Fix", [make_plant().id, 999])

    def test_mixed_organizations_rejected(self, service, superadmin, make_plant, other_organization):
        own = make_plant()
        foreign = make_plant(org_id=other_organization.id)

        with pytest.raises(OrganizationMismatchError):
            service.create_work_order(superadmin, "Fix", [own.id, foreign.id])

    def test_moves_plant_from_previous_work_order(self, service, superadmin, make_plant, test_session):
        plant = make_plant()
        first = service.create_work_order(superadmin, "First", [plant.id])
        second = service.create_work_order(superadmin, "Second", [plant.id])

        assert active_bindings(test_session, plant.id) == [second.id]
        assert first.id != second.id

    def test_read_only_accounts_cannot_create(self, service, govt_user, org_user, make_plant):
        plant = make_plant()
        for actor in (govt_user, org_user):
            with pytest.raises(PermissionDeniedError):
                service.create_work_order(actor, "Fix", [plant.id])


class TestPlantAttachment:
    """Test attach, detach and replace."""

    def test_attach_reactivates_existing_binding(self, service, superadmin, make_plant, test_session):
        plant = make_plant()
        work_order = service.create_work_order(superadmin, "Fix", [plant.id])
        service.detach_plants(superadmin, work_order.id, [plant.id])
        assert active_bindings(test_session, plant.id) == []

        service.attach_plants(superadmin, work_order.id, [plant.id])

        links = WorkOrderRepository(test_session).get_links(work_order.id)
        assert len(links) == 1
        assert links[0].is_active is True

    def test_attach_rejects_other_org(self, service, superadmin, make_plant, other_organization):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        foreign = make_plant(org_id=other_organization.id)

        with pytest.raises(OrganizationMismatchError):
            service.attach_plants(superadmin, work_order.id, [foreign.id])

    def test_attach_steals_from_other_work_order(self, service, superadmin, make_plant, test_session):
        shared = make_plant()
        first = service.create_work_order(superadmin, "First", [shared.id])
        second = service.create_work_order(superadmin, "Second", [make_plant().id])

        service.attach_plants(superadmin, second.id, [shared.id])

        assert active_bindings(test_session, shared.id) == [second.id]
        assert WorkOrderRepository(test_session).get_active_plants(first.id) == []

    def test_attach_signals_efficiency(self, service, superadmin, make_plant, efficiency_signal):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        service.attach_plants(superadmin, work_order.id, [make_plant().id])
        efficiency_signal.assert_called_once_with(work_order.id)

    def test_replace_plants(self, service, superadmin, make_plant, test_session):
        a, b, c = make_plant(), make_plant(), make_plant()
        work_order = service.create_work_order(superadmin, "Fix", [a.id, b.id])

        service.replace_plants(superadmin, work_order.id, [b.id, c.id])

        active = {p.id for p in WorkOrderRepository(test_session).get_active_plants(work_order.id)}
        assert active == {b.id, c.id}
        # The detached binding is kept, inactive
        assert len(WorkOrderRepository(test_session).get_links(work_order.id)) == 3

    def test_replace_follows_new_organization(
        self, service, superadmin, make_plant, other_organization
    ):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        foreign = make_plant(org_id=other_organization.id)

        service.replace_plants(superadmin, work_order.id, [foreign.id])

        assert work_order.org_id == other_organization.id

    def test_unknown_work_order(self, service, superadmin, make_plant):
        with pytest.raises(NotFoundError):
            service.attach_plants(superadmin, 404, [make_plant().id])


class TestChangeStatus:
    """Test change_status."""

    def test_valid_transition(self, service, superadmin, make_plant):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])

        service.change_status(superadmin, work_order.id, "ASSIGNED")

        assert work_order.status == "ASSIGNED"
        assert service.next_statuses(work_order.id) == [
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.BLOCKED,
        ]

    def test_invalid_transition_leaves_status(self, service, superadmin, make_plant):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])

        with pytest.raises(InvalidTransitionError):
            service.change_status(superadmin, work_order.id, WorkOrderStatus.IN_PROGRESS)

        assert service.get_work_order(work_order.id).status == "OPEN"

    def test_in_progress_signals_efficiency(self, service, superadmin, make_plant, efficiency_signal):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        service.change_status(superadmin, work_order.id, "ASSIGNED")
        efficiency_signal.assert_not_called()

        service.change_status(superadmin, work_order.id, "IN_PROGRESS")
        efficiency_signal.assert_called_once_with(work_order.id)

    def test_signal_failure_does_not_fail_transition(
        self, service, superadmin, make_plant, efficiency_signal
    ):
        efficiency_signal.side_effect = RuntimeError("efficiency service down")
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        service.change_status(superadmin, work_order.id, "ASSIGNED")

        service.change_status(superadmin, work_order.id, "IN_PROGRESS")

        assert work_order.status == "IN_PROGRESS"

    def test_full_lifecycle_with_block(self, service, superadmin, make_plant):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        for status in ("BLOCKED", "IN_PROGRESS", "WAITING_VALIDATION", "CLOSED"):
            service.change_status(superadmin, work_order.id, status)

        assert work_order.status == "CLOSED"
        assert service.next_statuses(work_order.id) == []

    def test_org_account_cannot_change_status(self, service, superadmin, org_user, make_plant):
        work_order = service.create_work_order(superadmin, "Fix", [make_plant().id])
        with pytest.raises(PermissionDeniedError):
            service.change_status(org_user, work_order.id, "ASSIGNED")


class TestListAndDelete:
    """Test list_work_orders and delete_work_order."""

    def test_org_scoping(self, service, superadmin, govt_user, org_user, make_plant, other_organization):
        service.create_work_order(superadmin, "Own", [make_plant().id])
        service.create_work_order(superadmin, "Foreign", [make_plant(org_id=other_organization.id).id])

        assert [w.title for w in service.list_work_orders(org_user)] == ["Own"]
        assert {w.title for w in service.list_work_orders(govt_user)} == {"Own", "Foreign"}
        assert {w.title for w in service.list_work_orders(superadmin)} == {"Own", "Foreign"}

    def test_delete(self, service, superadmin, make_plant, test_session):
        plant = make_plant()
        work_order = service.create_work_order(superadmin, "Fix", [plant.id])

        service.delete_work_order(superadmin, work_order.id)

        with pytest.raises(NotFoundError):
            service.get_work_order(work_order.id)
        assert active_bindings(test_session, plant.id) == []
