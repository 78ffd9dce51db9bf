"""
storyloop rollback - Reset git and run state to before a story's first attempt.
"""

from pathlib import Path

from storyloop.git.manager import GitManager
from storyloop.git.runner import GitError
from storyloop.lib.config import LoopConfig
from storyloop.runner.state_store import RunStateStore, StateError


def cmd_rollback(args, cwd: Path, config: LoopConfig, git: GitManager | None = None) -> int:
    """Roll back one story (and everything after it) or the whole run."""
    git = git or GitManager(cwd)

    try:
        store = RunStateStore.open_existing(cwd, git.get_current_sha)
    except StateError as e:
        print(f"ERROR: {e}")
        return 2

    if store is None:
        print("ERROR: No run state found. Nothing to roll back.")
        return 1

    history = store.get_iteration_history()

    if args.all:
        if not history:
            print("No iterations to roll back")
            return 0
        target_sha = history[0].start_sha
        description = "all iterations"
    else:
        if not args.story:
            print("ERROR: Specify a story ID or use --all")
            print("Usage: storyloop rollback <story> [--force]")
            print("       storyloop rollback --all [--force]")
            return 2
        first = next((i for i in history if i.story_id == args.story), None)
        if first is None:
            print(f"ERROR: No iteration found for story: {args.story}")
            return 1
        target_sha = first.start_sha
        description = f"story {args.story} and every later iteration"

    if not args.force:
        print(f"This will roll back {description} and reset to {target_sha}")
        print("Use --force to confirm")
        return 0

    try:
        git.reset_to_sha(target_sha)
    except GitError as e:
        print(f"ERROR: Rollback failed: {e}")
        return 1

    if args.all:
        store.rollback_all()
        print("Rolled back all iterations")
    else:
        store.rollback_story(args.story)
        print(f"Rolled back story {args.story}")
    return 0
