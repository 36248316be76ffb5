"""Tests for the work order status machine."""

import pytest

from solarops.utils.exceptions import InvalidTransitionError
from solarops.workorders.status_machine import (
    ALLOWED_TRANSITIONS,
    WorkOrderStatus,
    get_next_valid_statuses,
    is_valid_transition,
    require_transition,
)

S = WorkOrderStatus

VALID = {
    (S.OPEN, S.ASSIGNED),
    (S.OPEN, S.BLOCKED),
    (S.ASSIGNED, S.IN_PROGRESS),
    (S.ASSIGNED, S.BLOCKED),
    (S.IN_PROGRESS, S.WAITING_VALIDATION),
    (S.IN_PROGRESS, S.BLOCKED),
    (S.WAITING_VALIDATION, S.CLOSED),
    (S.WAITING_VALIDATION, S.BLOCKED),
    (S.BLOCKED, S.IN_PROGRESS),
}


class TestIsValidTransition:
    """Test is_valid_transition against the full truth table."""

    @pytest.mark.parametrize("current", list(S))
    @pytest.mark.parametrize("requested", list(S))
    def test_truth_table(self, current, requested):
        """Exactly the enumerated pairs are valid."""
        assert is_valid_transition(current, requested) == ((current, requested) in VALID)

    def test_examples(self):
        assert is_valid_transition("OPEN", "ASSIGNED") is True
        assert is_valid_transition("OPEN", "IN_PROGRESS") is False
        assert is_valid_transition("CLOSED", "BLOCKED") is False

    def test_same_state_rejected(self):
        for status in S:
            assert is_valid_transition(status, status) is False

    def test_unknown_status_rejected(self):
        assert is_valid_transition("OPEN", "DONE") is False
        assert is_valid_transition("DONE", "OPEN") is False
        assert is_valid_transition("open", "assigned") is False


class TestNextValidStatuses:
    """Test get_next_valid_statuses."""

    def test_forward_step_first(self):
        assert get_next_valid_statuses(S.OPEN) == [S.ASSIGNED, S.BLOCKED]
        assert get_next_valid_statuses(S.IN_PROGRESS) == [S.WAITING_VALIDATION, S.BLOCKED]

    def test_blocked_returns_to_in_progress(self):
        assert get_next_valid_statuses(S.BLOCKED) == [S.IN_PROGRESS]

    def test_closed_is_terminal(self):
        assert get_next_valid_statuses(S.CLOSED) == []

    def test_unknown_status(self):
        assert get_next_valid_statuses("ARCHIVED") == []

    def test_consistent_with_is_valid(self):
        for current, targets in ALLOWED_TRANSITIONS.items():
            for target in get_next_valid_statuses(current):
                assert target in targets
                assert is_valid_transition(current, target)


class TestRequireTransition:
    """Test require_transition."""

    def test_returns_requested_status(self):
        assert require_transition("ASSIGNED", "IN_PROGRESS") is S.IN_PROGRESS

    def test_raises_with_both_statuses(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            require_transition(S.OPEN, S.CLOSED)

        assert exc_info.value.current == "OPEN"
        assert exc_info.value.requested == "CLOSED"
        assert "OPEN" in str(exc_info.value)
        assert "CLOSED" in str(exc_info.value)
