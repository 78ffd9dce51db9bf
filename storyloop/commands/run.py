"""
storyloop run - Drive the agent over the backlog.
"""

from pathlib import Path

from storyloop.git.runner import GitError
from storyloop.lib.config import ConfigError, LoopConfig, merge_cli_overrides
from storyloop.pm.backlog import BacklogError
from storyloop.runner.locking import LockTimeout, run_lock
from storyloop.runner.loop import Orchestrator, RunOutcome, RunResult
from storyloop.runner.reporter import ConsoleReporter
from storyloop.runner.state_store import IterationNotFound, StateError


def print_summary(result: RunResult):
    print()
    print("=" * 60)
    print("  Run summary")
    print("=" * 60)
    print(f"Stories completed: {result.completed_stories}/{result.total_stories}")
    print(f"Iterations used:   {result.iterations_used}")
    if result.blocked_stories:
        print(f"Blocked stories:   {', '.join(result.blocked_stories)}")
    if result.reached_max_iterations and not result.success:
        print("Stopped: reached max iterations")
    elif result.outcome == RunOutcome.STALLED:
        print("Stopped: all remaining stories are blocked")
    elif result.outcome == RunOutcome.NO_ELIGIBLE:
        print("Stopped: target story is complete or blocked")


def cmd_run(args, cwd: Path, config: LoopConfig) -> int:
    """Run the loop under the run lock."""
    try:
        config = merge_cli_overrides(config, max_iterations=args.max_iterations)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2

    reporter = ConsoleReporter(verbose=args.verbose)
    if args.dry_run:
        reporter.warn("DRY RUN MODE - no agent calls, git changes, backlog or state writes")
    reporter.info(f"Max iterations: {config.max_iterations}")
    if args.story:
        reporter.info(f"Target story: {args.story}")

    orchestrator = Orchestrator(
        cwd,
        config,
        dry_run=args.dry_run,
        target_story=args.story,
        reporter=reporter,
    )

    try:
        with run_lock(cwd):
            result = orchestrator.run()
    except LockTimeout as e:
        print(f"ERROR: Another run is active in {cwd} ({e})")
        return 2
    except (BacklogError, StateError, IterationNotFound, GitError) as e:
        print(f"ERROR: {e}")
        return 2

    print_summary(result)
    return 0 if result.success else 1
