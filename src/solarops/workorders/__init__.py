"""Work order lifecycle and plant assignment."""

from solarops.workorders.service import WorkOrderPriority, WorkOrderService
from solarops.workorders.status_machine import (
    ALLOWED_TRANSITIONS,
    WorkOrderStatus,
    get_next_valid_statuses,
    is_valid_transition,
    require_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "WorkOrderPriority",
    "WorkOrderService",
    "WorkOrderStatus",
    "get_next_valid_statuses",
    "is_valid_transition",
    "require_transition",
]
