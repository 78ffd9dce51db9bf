"""
storyloop unblock - Make a blocked story eligible again.
"""

from pathlib import Path

from storyloop.lib.config import LoopConfig
from storyloop.runner.state_store import RunStateStore, StateError


def cmd_unblock(args, cwd: Path, config: LoopConfig) -> int:
    try:
        store = RunStateStore.open_existing(cwd)
    except StateError as e:
        print(f"ERROR: {e}")
        return 2

    if store is None:
        print("ERROR: No run state found.")
        return 1

    if not store.is_story_blocked(args.story):
        print(f"Story {args.story} is not blocked")
        return 0

    store.unblock_story(args.story)
    print(f"Unblocked story {args.story}")
    return 0
