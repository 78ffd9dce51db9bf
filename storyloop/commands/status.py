"""
storyloop status - Show backlog progress and run state.
"""

from pathlib import Path

from storyloop.lib.config import LoopConfig
from storyloop.pm.backlog import BacklogError, load_backlog
from storyloop.pm.picker import StoryPicker
from storyloop.runner.models import RunState
from storyloop.runner.state_store import JsonStateFile, StateError, get_state_path


def load_run_state(cwd: Path, branch_name: str) -> RunState | None:
    """Persisted run state for branch_name, or None if there is none.

    Raises:
        StateError: if the state file is malformed
    """
    data = JsonStateFile(get_state_path(cwd)).load()
    if data is None or data["branchName"] != branch_name:
        return None
    return RunState.from_dict(data)


def cmd_status(args, cwd: Path, config: LoopConfig) -> int:
    """Show progress for the backlog in cwd."""
    try:
        backlog = load_backlog(cwd / config.backlog_path)
        state = load_run_state(cwd, backlog.branch_name)
    except (BacklogError, StateError) as e:
        print(f"ERROR: {e}")
        return 2

    blocked = state.blocked_stories if state else []
    picker = StoryPicker(backlog, blocked=blocked)

    print(f"Project:  {backlog.project}")
    print(f"Branch:   {backlog.branch_name}")
    print(f"Progress: {picker.completed_count()}/{picker.total_count()} stories complete")
    if state:
        print(f"Iteration: {state.current_iteration}/{state.max_iterations}")
    else:
        print("Iteration: no run yet")

    if picker.blocked_count():
        print(f"Blocked:  {', '.join(s.id for s in picker.blocked())}")

    print()
    print("Stories:")
    for story in sorted(backlog.stories, key=lambda s: s.priority):
        if story.passes:
            marker = "[x]"
        elif story.id in picker.blocked_ids:
            marker = "[!]"
        else:
            marker = "[ ]"
        print(f"  {marker} {story.id} (p{story.priority:g}): {story.title}")
        if args.verbose:
            for criterion in story.acceptance_criteria:
                print(f"        - {criterion}")

    next_story = picker.next_story()
    if next_story:
        print(f"\nNext: {next_story.id} - {next_story.title}")

    if args.verbose and state and state.iterations:
        print("\nIteration history:")
        for iteration in state.iterations:
            line = f"  {iteration.started_at or '?'}  {iteration.story_id}  {iteration.status.value}"
            line += f"  retries={iteration.retry_count}  start={iteration.start_sha[:8]}"
            if iteration.error:
                line += f"  error={iteration.error}"
            print(line)

    return 0
