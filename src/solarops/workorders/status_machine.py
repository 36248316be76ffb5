"""Work order status lifecycle.

Forward progression is strictly sequential::

    OPEN -> ASSIGNED -> IN_PROGRESS -> WAITING_VALIDATION -> CLOSED

BLOCKED can be entered from any non-terminal status and only leaves back to
IN_PROGRESS. CLOSED is terminal. Anything not listed in ALLOWED_TRANSITIONS,
including a transition to the same status, is rejected.
"""

from enum import StrEnum

from solarops.utils.exceptions import InvalidTransitionError


class WorkOrderStatus(StrEnum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_VALIDATION = "WAITING_VALIDATION"
    BLOCKED = "BLOCKED"
    CLOSED = "CLOSED"


# Ordered: forward step first, then BLOCKED
ALLOWED_TRANSITIONS: dict[WorkOrderStatus, tuple[WorkOrderStatus, ...]] = {
    WorkOrderStatus.OPEN: (WorkOrderStatus.ASSIGNED, WorkOrderStatus.BLOCKED),
    WorkOrderStatus.ASSIGNED: (WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.BLOCKED),
    WorkOrderStatus.IN_PROGRESS: (WorkOrderStatus.WAITING_VALIDATION, WorkOrderStatus.BLOCKED),
    WorkOrderStatus.WAITING_VALIDATION: (WorkOrderStatus.CLOSED, WorkOrderStatus.BLOCKED),
    WorkOrderStatus.BLOCKED: (WorkOrderStatus.IN_PROGRESS,),
    WorkOrderStatus.CLOSED: (),
}


def _coerce(status: WorkOrderStatus | str) -> WorkOrderStatus | None:
    try:
        return WorkOrderStatus(status)
    except ValueError:
        return None


def is_valid_transition(current: WorkOrderStatus | str, requested: WorkOrderStatus | str) -> bool:
    """Check whether a work order may move from ``current`` to ``requested``.

    Unknown status values are never valid.
    """
    source = _coerce(current)
    target = _coerce(requested)
    if source is None or target is None:
        return False
    return target in ALLOWED_TRANSITIONS.get(source, ())


def get_next_valid_statuses(current: WorkOrderStatus | str) -> list[WorkOrderStatus]:
    """List the statuses reachable from ``current`` in one step."""
    source = _coerce(current)
    if source is None:
        return []
    return list(ALLOWED_TRANSITIONS.get(source, ()))


def require_transition(
    current: WorkOrderStatus | str, requested: WorkOrderStatus | str
) -> WorkOrderStatus:
    """Validate a transition and return the requested status.

    Raises:
        InvalidTransitionError: If the transition is not allowed.
    """
    if not is_valid_transition(current, requested):
        raise InvalidTransitionError(str(current), str(requested))
    return WorkOrderStatus(requested)
