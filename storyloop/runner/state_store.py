"""
Durable run state for storyloop.

Tracks iteration history, retry counts and blocked stories for the
current branch. Every mutating call rewrites .storyloop/state.json so the
file never lags more than one call behind memory; a crash loses at most
the in-flight iteration.
"""

import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from storyloop.lib.constants import STATE_DIR, STATE_FILE
from storyloop.lib.validate import ValidationError, validate, validate_before_write
from storyloop.runner.models import Iteration, RunState
from storyloop.workflow.fsm import IterationStatus, can_transition, transition

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Persisted run state is unreadable or malformed."""


class IterationNotFound(Exception):
    """No in-progress iteration exists for the story."""

    def __init__(self, story_id: str):
        self.story_id = story_id
        super().__init__(f"No iteration found for story: {story_id}")


def get_state_path(cwd: Path) -> Path:
    return cwd / STATE_DIR / STATE_FILE


class JsonStateFile:
    """Whole-document JSON persistence for the run state."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict | None:
        """Return the validated document, or None if there is none yet.

        Raises:
            StateError: if the file exists but is not a valid state document
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"Failed to read run state {self.path}: {e}") from None
        try:
            validate(data, "state")
        except ValidationError as e:
            raise StateError(f"Invalid run state {self.path}: {e}") from None
        return data

    def save(self, data: dict) -> None:
        validate_before_write(data, "state", self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2) + "\n")
        tmp_path.replace(self.path)


class MemoryStateFile:
    """In-memory stand-in for JsonStateFile, used by dry runs.

    Optionally seeded with an existing document so a dry run sees the
    real history without ever writing it.
    """

    def __init__(self, data: dict | None = None):
        self.data = copy.deepcopy(data)

    def exists(self) -> bool:
        return self.data is not None

    def load(self) -> dict | None:
        return copy.deepcopy(self.data)

    def save(self, data: dict) -> None:
        validate(data, "state")
        self.data = copy.deepcopy(data)


def _now() -> str:
    return datetime.now().isoformat()


def _revision_unavailable() -> str:
    raise StateError("No revision source: this store cannot start or complete iterations")


class RunStateStore:
    """Owner of RunState; all mutations are write-through.

    Usage:
        store = RunStateStore(JsonStateFile(path), "storyloop/feature", 10, git.get_current_sha)
        iteration = store.start_iteration("US-001")
        store.fail_iteration("US-001", "tests failed", max_retries=3)
    """

    def __init__(
        self,
        state_file: JsonStateFile | MemoryStateFile,
        branch_name: str,
        max_iterations: int,
        get_revision: Callable[[], str],
    ):
        self.state_file = state_file
        self.get_revision = get_revision

        existing = state_file.load()
        if existing is not None and existing["branchName"] == branch_name:
            self.state = RunState.from_dict(existing)
            logger.debug(f"Resuming run on {branch_name} at iteration {self.state.current_iteration}")
        else:
            if existing is not None:
                logger.info(f"Run state is for branch {existing['branchName']}, starting fresh for {branch_name}")
            self.state = RunState.fresh(branch_name, max_iterations)

        # The current run's ceiling always wins over the persisted one
        self.state.max_iterations = max_iterations

    @classmethod
    def open(cls, cwd: Path, branch_name: str, max_iterations: int,
             get_revision: Callable[[], str]) -> "RunStateStore":
        """Open the store at the standard location under cwd."""
        return cls(JsonStateFile(get_state_path(cwd)), branch_name, max_iterations, get_revision)

    @classmethod
    def open_existing(cls, cwd: Path,
                      get_revision: Optional[Callable[[], str]] = None) -> Optional["RunStateStore"]:
        """Open the persisted state for whatever branch it belongs to, or None.

        Without get_revision the store can edit history but not start iterations.
        """
        state_file = JsonStateFile(get_state_path(cwd))
        data = state_file.load()
        if data is None:
            return None
        return cls(state_file, data["branchName"], data["maxIterations"],
                   get_revision or _revision_unavailable)

    def _save(self) -> None:
        self.state.last_updated_at = _now()
        self.state_file.save(self.state.to_dict())

    def _find_live(self, story_id: str) -> Iteration | None:
        for iteration in self.state.iterations:
            if iteration.story_id == story_id and iteration.status == IterationStatus.IN_PROGRESS:
                return iteration
        return None

    def _require_live(self, story_id: str) -> Iteration:
        iteration = self._find_live(story_id)
        if iteration is None:
            raise IterationNotFound(story_id)
        return iteration

    # Queries

    @property
    def current_iteration(self) -> int:
        return self.state.current_iteration

    @property
    def max_iterations(self) -> int:
        return self.state.max_iterations

    @property
    def branch_name(self) -> str:
        return self.state.branch_name

    def get_blocked_stories(self) -> list[str]:
        return list(self.state.blocked_stories)

    def get_iteration_history(self) -> list[Iteration]:
        return list(self.state.iterations)

    def is_story_blocked(self, story_id: str) -> bool:
        return story_id in self.state.blocked_stories

    def can_start_new_iteration(self) -> bool:
        return self.state.current_iteration < self.state.max_iterations

    def last_iteration_for(self, story_id: str) -> Iteration | None:
        """Most recently started iteration for story_id, across all history."""
        candidates = [
            (iteration.started_at or "", index, iteration)
            for index, iteration in enumerate(self.state.iterations)
            if iteration.story_id == story_id
        ]
        if not candidates:
            return None
        # Later position in the list breaks timestamp ties
        return max(candidates, key=lambda c: (c[0], c[1]))[2]

    # Mutations

    def start_iteration(self, story_id: str) -> Iteration:
        """Begin a new attempt at story_id, superseding any earlier live record."""
        start_sha = self.get_revision()

        previous = next(
            (i for i in self.state.iterations
             if i.story_id == story_id and i.status != IterationStatus.ROLLED_BACK),
            None,
        )
        retry_count = previous.retry_count if previous else 0

        iteration = Iteration(
            story_id=story_id,
            status=IterationStatus.PENDING,
            start_sha=start_sha,
            retry_count=retry_count,
            started_at=_now(),
        )
        transition(iteration, IterationStatus.IN_PROGRESS)

        # A leftover in_progress record here means an earlier run crashed;
        # it is treated the same as a prior failed attempt.
        self.state.iterations = [
            i for i in self.state.iterations
            if i.story_id != story_id or i.status == IterationStatus.ROLLED_BACK
        ]
        self.state.iterations.append(iteration)
        self.state.current_iteration += 1
        self._save()

        logger.debug(f"Started iteration for {story_id} (retry {retry_count})")
        return iteration

    def complete_iteration(self, story_id: str) -> Iteration:
        iteration = self._require_live(story_id)
        transition(iteration, IterationStatus.COMPLETED)
        iteration.end_sha = self.get_revision()
        iteration.completed_at = _now()
        self._save()

        logger.debug(f"Completed iteration for {story_id}")
        return iteration

    def fail_iteration(self, story_id: str, error: str, max_retries: int) -> IterationStatus:
        """Record a failed attempt.

        Returns BLOCKED once retry_count reaches max_retries, FAILED otherwise.
        """
        iteration = self._require_live(story_id)
        iteration.retry_count += 1
        iteration.error = error
        iteration.completed_at = _now()

        if iteration.retry_count >= max_retries:
            transition(iteration, IterationStatus.BLOCKED)
            if story_id not in self.state.blocked_stories:
                self.state.blocked_stories.append(story_id)
            logger.warning(f"Story {story_id} blocked after {iteration.retry_count} attempt(s)")
        else:
            transition(iteration, IterationStatus.FAILED)
            logger.debug(f"Iteration failed for {story_id} (attempt {iteration.retry_count})")

        self._save()
        return iteration.status

    def mark_rolled_back(self, story_id: str) -> None:
        """Roll back the live iteration (if any) and unblock the story."""
        iteration = self._find_live(story_id)
        if iteration is not None:
            transition(iteration, IterationStatus.ROLLED_BACK)
        self.state.blocked_stories = [s for s in self.state.blocked_stories if s != story_id]
        self._save()

    def unblock_story(self, story_id: str) -> None:
        self.state.blocked_stories = [s for s in self.state.blocked_stories if s != story_id]
        self._save()

    def rollback_story(self, story_id: str) -> Optional[str]:
        """Mark the first iteration for story_id and every later one rolled back.

        Returns the start SHA of that first iteration (the git reset target),
        or None if the story has no recorded iterations.
        """
        index = next(
            (n for n, i in enumerate(self.state.iterations) if i.story_id == story_id),
            None,
        )
        if index is None:
            return None

        target_sha = self.state.iterations[index].start_sha
        for iteration in self.state.iterations[index:]:
            if can_transition(iteration, IterationStatus.ROLLED_BACK):
                transition(iteration, IterationStatus.ROLLED_BACK)
        self.state.blocked_stories = [s for s in self.state.blocked_stories if s != story_id]
        self._save()
        return target_sha

    def rollback_all(self) -> Optional[str]:
        """Forget every iteration. Returns the first iteration's start SHA, if any."""
        if not self.state.iterations:
            return None
        target_sha = self.state.iterations[0].start_sha
        self.state.iterations = []
        self.state.current_iteration = 0
        self.state.blocked_stories = []
        self._save()
        return target_sha

    def reset(self) -> None:
        """Start over on the same branch: no history, no blocked stories."""
        self.state = RunState.fresh(self.state.branch_name, self.state.max_iterations)
        self._save()
