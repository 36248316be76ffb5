"""Repository classes for database operations."""

from solarops.db.repositories.alert import AlertRepository
from solarops.db.repositories.organization import OrganizationRepository
from solarops.db.repositories.plant import PlantRepository
from solarops.db.repositories.vendor import VendorRepository
from solarops.db.repositories.work_order import WorkOrderRepository

__all__ = [
    "AlertRepository",
    "OrganizationRepository",
    "PlantRepository",
    "VendorRepository",
    "WorkOrderRepository",
]
