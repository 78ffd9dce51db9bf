"""Tests for storyloop.workflow.fsm module."""

import pytest

from storyloop.runner.models import Iteration
from storyloop.workflow.fsm import (
    STATES,
    TRIGGER_FOR,
    InvalidTransition,
    IterationFSM,
    IterationStatus,
    can_transition,
    transition,
)


def make_iteration(status: IterationStatus) -> Iteration:
    return Iteration(story_id="US-001", status=status, start_sha="abc123")


class TestFSMStates:
    """Tests for FSM state definitions."""

    def test_all_states_defined(self):
        expected = ["pending", "in_progress", "completed", "failed", "blocked", "rolled_back"]
        assert set(STATES) == set(expected)

    def test_every_trigger_target_is_a_state(self):
        for source, dest in TRIGGER_FOR:
            assert source in STATES
            assert dest in STATES


class TestTransition:
    """Tests for transition()."""

    @pytest.mark.parametrize("source,dest", [
        (IterationStatus.PENDING, IterationStatus.IN_PROGRESS),
        (IterationStatus.IN_PROGRESS, IterationStatus.COMPLETED),
        (IterationStatus.IN_PROGRESS, IterationStatus.FAILED),
        (IterationStatus.IN_PROGRESS, IterationStatus.BLOCKED),
        (IterationStatus.IN_PROGRESS, IterationStatus.ROLLED_BACK),
        (IterationStatus.FAILED, IterationStatus.IN_PROGRESS),
        (IterationStatus.ROLLED_BACK, IterationStatus.IN_PROGRESS),
        (IterationStatus.BLOCKED, IterationStatus.ROLLED_BACK),
        (IterationStatus.COMPLETED, IterationStatus.ROLLED_BACK),
    ])
    def test_allowed_transitions_update_record(self, source, dest):
        iteration = make_iteration(source)
        transition(iteration, dest)
        assert iteration.status == dest

    @pytest.mark.parametrize("source,dest", [
        (IterationStatus.PENDING, IterationStatus.COMPLETED),
        (IterationStatus.COMPLETED, IterationStatus.IN_PROGRESS),
        (IterationStatus.BLOCKED, IterationStatus.IN_PROGRESS),
        (IterationStatus.FAILED, IterationStatus.COMPLETED),
        (IterationStatus.PENDING, IterationStatus.ROLLED_BACK),
    ])
    def test_illegal_transitions_raise(self, source, dest):
        iteration = make_iteration(source)
        with pytest.raises(InvalidTransition) as exc_info:
            transition(iteration, dest)
        assert iteration.status == source
        assert exc_info.value.story_id == "US-001"
        assert source.value in str(exc_info.value)

    def test_self_transition_is_noop(self):
        iteration = make_iteration(IterationStatus.BLOCKED)
        transition(iteration, IterationStatus.BLOCKED)
        assert iteration.status == IterationStatus.BLOCKED

    def test_can_transition(self):
        iteration = make_iteration(IterationStatus.IN_PROGRESS)
        assert can_transition(iteration, IterationStatus.COMPLETED)
        assert can_transition(iteration, IterationStatus.IN_PROGRESS)
        assert not can_transition(iteration, IterationStatus.PENDING)


class TestIterationFSM:
    """Tests for the machine bound to an iteration."""

    def test_starts_from_record_status(self):
        fsm = IterationFSM(make_iteration(IterationStatus.FAILED))
        assert fsm.state == "failed"
        assert fsm.can("start")
        assert not fsm.can("complete")

    def test_trigger_writes_back(self):
        iteration = make_iteration(IterationStatus.IN_PROGRESS)
        fsm = IterationFSM(iteration)
        fsm.complete()
        assert iteration.status == IterationStatus.COMPLETED
