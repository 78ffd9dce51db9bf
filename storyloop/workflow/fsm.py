"""Iteration status state machine using transitions library.

Every status change of an Iteration goes through here so the allowed
lifecycle is declared in one table:

    pending -> in_progress -> completed
                           -> failed      -> in_progress (retry)
                           -> blocked     (left only by rollback/unblock)
                           -> rolled_back -> in_progress (retry)

Usage:
    from storyloop.workflow.fsm import transition, IterationStatus

    transition(iteration, IterationStatus.IN_PROGRESS)
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from transitions import Machine, MachineError

if TYPE_CHECKING:
    from storyloop.runner.models import Iteration

logger = logging.getLogger(__name__)


class IterationStatus(Enum):
    """All valid iteration states.

    Values are the strings persisted in state.json.
    """
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"
    ROLLED_BACK = "rolled_back"


STATES = [s.value for s in IterationStatus]

# Transitions defined as (trigger, source, dest)
# Each trigger becomes a method on the FSM
TRANSITIONS = [
    # Starting an attempt (first try or retry)
    {"trigger": "start", "source": "pending", "dest": "in_progress"},
    {"trigger": "start", "source": "failed", "dest": "in_progress"},
    {"trigger": "start", "source": "rolled_back", "dest": "in_progress"},

    # Attempt outcomes
    {"trigger": "complete", "source": "in_progress", "dest": "completed"},
    {"trigger": "fail", "source": "in_progress", "dest": "failed"},
    {"trigger": "block", "source": "in_progress", "dest": "blocked"},

    # Rollback returns the story to eligibility
    {"trigger": "roll_back", "source": "in_progress", "dest": "rolled_back"},
    {"trigger": "roll_back", "source": "failed", "dest": "rolled_back"},
    {"trigger": "roll_back", "source": "blocked", "dest": "rolled_back"},
    {"trigger": "roll_back", "source": "completed", "dest": "rolled_back"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class InvalidTransition(Exception):
    """Raised when attempting an invalid iteration status change."""

    def __init__(self, from_status: IterationStatus, to_status: IterationStatus, story_id: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.story_id = story_id
        super().__init__(
            f"Invalid transition: {from_status.value} -> {to_status.value}"
            + (f" (story: {story_id})" if story_id else "")
        )


class IterationFSM:
    """State machine bound to one Iteration record.

    The Iteration's status field is the source of truth; the FSM starts
    from it and writes every successful transition back to it.
    """

    def __init__(self, iteration: "Iteration"):
        self.iteration = iteration

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=iteration.status.value,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Write the new status back to the iteration record."""
        from_state = event.transition.source
        to_state = event.transition.dest
        self.iteration.status = IterationStatus(to_state)
        logger.debug(f"[FSM] {self.iteration.story_id}: {from_state} -> {to_state} ({event.event.name})")

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)


def can_transition(iteration: "Iteration", to_status: IterationStatus) -> bool:
    """Check if moving iteration to to_status is allowed (self-transition counts)."""
    if iteration.status == to_status:
        return True
    return (iteration.status.value, to_status.value) in TRIGGER_FOR


def transition(iteration: "Iteration", to_status: IterationStatus) -> None:
    """Move iteration to to_status with validation.

    Self-transition is a no-op.

    Raises:
        InvalidTransition: If the transition is not allowed
    """
    if iteration.status == to_status:
        return

    trigger = TRIGGER_FOR.get((iteration.status.value, to_status.value))
    if trigger is None:
        raise InvalidTransition(iteration.status, to_status, iteration.story_id)

    fsm = IterationFSM(iteration)
    try:
        getattr(fsm, trigger)()
    except MachineError as e:
        raise InvalidTransition(iteration.status, to_status, iteration.story_id) from e
