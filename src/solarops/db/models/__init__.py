"""ORM models for SolarOps data."""

from solarops.db.models.alert import Alert, AlertSeverity, AlertStatus
from solarops.db.models.organization import Organization
from solarops.db.models.plant import Plant
from solarops.db.models.vendor import Vendor
from solarops.db.models.work_order import WorkOrder, WorkOrderPlant

__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertStatus",
    "Organization",
    "Plant",
    "Vendor",
    "WorkOrder",
    "WorkOrderPlant",
]
