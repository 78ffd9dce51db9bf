"""
storyloop reset - Discard run history for the current branch.

Git history and the backlog are left alone; only iteration history,
the iteration counter and blocked stories are cleared.
"""

from pathlib import Path

from storyloop.lib.config import LoopConfig
from storyloop.runner.state_store import RunStateStore, StateError


def cmd_reset(args, cwd: Path, config: LoopConfig) -> int:
    try:
        store = RunStateStore.open_existing(cwd)
    except StateError as e:
        print(f"ERROR: {e}")
        return 2

    if store is None:
        print("No run state found. Nothing to reset.")
        return 0

    count = len(store.get_iteration_history())
    if not args.force:
        answer = input(
            f"Discard {count} iteration(s) of history for {store.branch_name}? [y/N] "
        ).strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted")
            return 1

    store.reset()
    print(f"Reset run state for {store.branch_name}")
    return 0
