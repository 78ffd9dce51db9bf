"""
Iteration loop for storyloop.

One pass per story attempt:

    SELECT -> EXECUTE -> INTERPRET -> VERIFY -> COMPLETE
                                   `-> FAIL -> ROLLBACK -> BACKOFF

The loop ends when every story passes (DONE), every remaining story is
blocked (STALLED), a pinned story stops being eligible (NO_ELIGIBLE) or
the iteration ceiling is reached (EXHAUSTED).

Structural errors (BacklogError, StateError, IterationNotFound, GitError
from a failed rollback) are not caught here and end the run.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from storyloop.agents.claude import Agent, create_agent
from storyloop.git.manager import GitManager
from storyloop.lib.archive import ArchiveManager, append_progress
from storyloop.lib.backoff import calculate_delay
from storyloop.lib.config import LoopConfig
from storyloop.lib.output import indent, truncate_output
from storyloop.pm.backlog import load_backlog, mark_story_complete
from storyloop.pm.models import Backlog, Story
from storyloop.pm.picker import StoryPicker
from storyloop.runner import interpreter
from storyloop.runner.reporter import ConsoleReporter, Reporter
from storyloop.runner.state_store import (
    JsonStateFile,
    MemoryStateFile,
    RunStateStore,
    get_state_path,
)
from storyloop.runner.verification import PipelineResult, VerificationRunner
from storyloop.workflow.fsm import IterationStatus

logger = logging.getLogger(__name__)

VERIFICATION_FAILED = "verification failed"
AGENT_BLOCKED = "agent reported blocked"


class RunOutcome(Enum):
    DONE = "done"
    STALLED = "stalled"
    EXHAUSTED = "exhausted"
    NO_ELIGIBLE = "no_eligible"


@dataclass
class RunResult:
    success: bool
    total_stories: int
    completed_stories: int
    blocked_stories: list[str] = field(default_factory=list)
    iterations_used: int = 0
    reached_max_iterations: bool = False
    outcome: RunOutcome = RunOutcome.EXHAUSTED


class Orchestrator:
    """Drives the agent over the backlog until done, stalled or out of iterations.

    Collaborators default to the real implementations; tests inject fakes
    for git, agent, verifier and sleep.
    """

    def __init__(
        self,
        cwd: Path,
        config: LoopConfig,
        dry_run: bool = False,
        target_story: Optional[str] = None,
        reporter: Optional[Reporter] = None,
        git: Optional[GitManager] = None,
        agent: Optional[Agent] = None,
        verifier: Optional[VerificationRunner] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cwd = cwd
        self.config = config
        self.dry_run = dry_run
        self.target_story = target_story
        self.reporter = reporter or ConsoleReporter()
        self.git = git or GitManager(cwd)
        self.agent = agent
        self.verifier = verifier
        self.sleep = sleep

        self.backlog_path = cwd / config.backlog_path
        self.progress_path = cwd / config.progress_path

        # Set by initialize()
        self.backlog: Optional[Backlog] = None
        self.store: Optional[RunStateStore] = None
        self.picker: Optional[StoryPicker] = None

    # Setup

    def initialize(self) -> None:
        """Load the backlog and open state; raises BacklogError/StateError."""
        self.backlog = load_backlog(self.backlog_path)
        branch = self.backlog.branch_name

        if self.dry_run:
            self.reporter.info(f"[DRY RUN] Using branch {branch} without switching")
        else:
            archive = ArchiveManager(self.cwd, self.config.backlog_path, self.config.progress_path)
            archived = archive.archive_if_branch_changed(branch)
            if archived:
                self.reporter.info(f"Archived previous run to: {archived}")
            archive.initialize_progress_file()

            if self.git.ensure_branch(branch):
                self.reporter.info(f"Switched to branch: {branch}")

        self.store = self._open_store(branch)
        self.picker = StoryPicker(
            self.backlog,
            blocked=self.store.get_blocked_stories(),
            target_story=self.target_story,
        )

        if self.agent is None:
            self.agent = create_agent(self.config, self.cwd, self.dry_run)
        if self.verifier is None:
            self.verifier = VerificationRunner(
                self.config.verification_commands,
                self.cwd,
                timeout=self.config.verification_timeout,
                dry_run=self.dry_run,
            )

    def _open_store(self, branch: str) -> RunStateStore:
        if not self.dry_run:
            return RunStateStore.open(self.cwd, branch, self.config.max_iterations, self.git.get_current_sha)
        # Dry runs see real history but never write it
        state_file = MemoryStateFile(JsonStateFile(get_state_path(self.cwd)).load())
        return RunStateStore(state_file, branch, self.config.max_iterations, self.git.get_current_sha)

    # Loop

    def run(self) -> RunResult:
        self.initialize()
        store, picker = self.store, self.picker

        iterations_used = 0
        no_eligible = False

        while store.can_start_new_iteration():
            picker.update_blocked(store.get_blocked_stories())

            if picker.all_complete_or_blocked():
                break

            story = picker.next_story()
            if story is None:
                self.reporter.warn("No more stories to work on")
                no_eligible = True
                break

            finished = self.run_iteration(story)
            iterations_used += 1

            if finished:
                self.reporter.success("All stories complete!")
                break

            if not self.dry_run:
                self.sleep(self.config.iteration_pause)

        picker.update_blocked(store.get_blocked_stories())
        return self._build_result(iterations_used, no_eligible)

    def _build_result(self, iterations_used: int, no_eligible: bool) -> RunResult:
        picker = self.picker
        if picker.all_complete():
            outcome = RunOutcome.DONE
        elif no_eligible:
            outcome = RunOutcome.NO_ELIGIBLE
        elif picker.all_complete_or_blocked():
            outcome = RunOutcome.STALLED
        else:
            outcome = RunOutcome.EXHAUSTED

        return RunResult(
            success=picker.all_complete(),
            total_stories=picker.total_count(),
            completed_stories=picker.completed_count(),
            blocked_stories=self.store.get_blocked_stories(),
            iterations_used=iterations_used,
            reached_max_iterations=not self.store.can_start_new_iteration(),
            outcome=outcome,
        )

    def run_iteration(self, story: Story) -> bool:
        """Run one attempt at story. Returns True if the whole backlog is now complete."""
        store = self.store
        self.reporter.header(f"Iteration {store.current_iteration + 1}/{store.max_iterations}: {story.id}")
        self.reporter.info(f"Story: {story.title}")
        self.reporter.newline()

        iteration = store.start_iteration(story.id)

        self.reporter.info("Running agent...")
        try:
            agent_result = self.agent.run()
        except Exception as e:
            logger.exception(f"Agent raised while working on {story.id}")
            self._handle_failure(story, f"agent error: {e}", iteration.start_sha)
            return False

        if not agent_result.success:
            logger.debug(f"Agent exited with code {agent_result.exit_code}")

        parsed = interpreter.interpret(agent_result.output)
        agent_blocked = interpreter.is_blocked(parsed)

        if interpreter.is_complete(parsed):
            self._complete_story(story, parsed)
            if self.picker.all_complete():
                return True
        elif interpreter.is_success(parsed):
            try:
                verification = self.verifier.run()
            except Exception as e:
                logger.exception(f"Verification raised while checking {story.id}")
                self._handle_failure(story, f"verification error: {e}", iteration.start_sha, agent_blocked)
                return False

            if verification.success:
                self._complete_story(story, parsed)
            else:
                self._report_verification_failures(verification)
                self._handle_failure(story, VERIFICATION_FAILED, iteration.start_sha, agent_blocked)
        else:
            self._handle_failure(story, interpreter.error_message(parsed), iteration.start_sha, agent_blocked)

        return False

    # Outcomes

    def _complete_story(self, story: Story, parsed: interpreter.ParsedOutput) -> None:
        if self.dry_run:
            story.passes = True
        else:
            mark_story_complete(self.backlog_path, self.backlog, story.id)
        self.store.complete_iteration(story.id)
        self.reporter.success(f"Story {story.id} completed successfully")

        learnings = interpreter.learnings(parsed)
        for learning in learnings:
            self.reporter.debug(f"Learning: {learning}")
        self._progress(f"{story.id}: completed" + (f" ({'; '.join(learnings)})" if learnings else ""))

    def _handle_failure(self, story: Story, error: str, start_sha: str, agent_blocked: bool = False) -> None:
        """Roll back, record the failed attempt, then block or back off.

        An explicit blocked signal from the agent makes this failure final.
        """
        max_retries = 1 if agent_blocked else self.config.max_retries_per_story
        self.reporter.error(f"Iteration failed: {error}")

        if not self.dry_run:
            self.reporter.info("Rolling back changes...")
            self.git.reset_to_sha(start_sha)

        status = self.store.fail_iteration(story.id, error, max_retries)
        last = self.store.last_iteration_for(story.id)
        retry_count = last.retry_count if last else 1

        if status == IterationStatus.BLOCKED:
            self.reporter.error(f"Story {story.id} is now blocked after {retry_count} attempt(s)")
            if agent_blocked:
                self.reporter.error(f"Story {story.id} blocked: {AGENT_BLOCKED}")
            self._progress(f"{story.id}: blocked ({error})")
            return

        delay = calculate_delay(retry_count, self.config.retry)
        self._progress(f"{story.id}: failed attempt {retry_count} ({error})")

        self.reporter.info(f"Will retry in {delay:g}s (attempt {retry_count + 1})")
        if not self.dry_run:
            self.sleep(delay)

    def _report_verification_failures(self, verification: PipelineResult) -> None:
        for result in verification.failures:
            label = "optional check failed" if result.optional else "check failed"
            self.reporter.warn(f"{result.name} {label}: {result.command}")
            if result.output.strip():
                self.reporter.debug(indent(truncate_output(result.output)))

    def _progress(self, message: str) -> None:
        if not self.dry_run:
            append_progress(self.progress_path, message)
