"""Git operations for storyloop.

Return type conventions:
- Functions returning GitResult: Caller must check .success (or call
  .check()) before using output. Examples: create_commit(), reset_hard()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: branch_exists(), has_uncommitted_changes()
- Functions returning parsed values (str, list): Return None/empty on failure.
  Examples: get_commit_sha() -> None, get_files_changed_since() -> []

The run loop talks to git only through GitManager.
"""

from storyloop.git.runner import (
    GitError,
    GitResult,
    run_git,
)
from storyloop.git.status import (
    get_status_porcelain,
    has_uncommitted_changes,
    has_untracked_files,
)
from storyloop.git.diff import (
    get_files_changed_since,
)
from storyloop.git.branch import (
    get_current_branch,
    branch_exists,
    get_commit_sha,
    get_main_branch,
    checkout_branch,
    create_branch,
    get_commits_between,
)
from storyloop.git.commit import (
    stage_all,
    create_commit,
    reset_hard,
    clean_untracked,
)
from storyloop.git.manager import GitManager

__all__ = [
    # runner
    "GitError",
    "GitResult",
    "run_git",
    # status
    "get_status_porcelain",
    "has_uncommitted_changes",
    "has_untracked_files",
    # diff
    "get_files_changed_since",
    # branch
    "get_current_branch",
    "branch_exists",
    "get_commit_sha",
    "get_main_branch",
    "checkout_branch",
    "create_branch",
    "get_commits_between",
    # commit
    "stage_all",
    "create_commit",
    "reset_hard",
    "clean_untracked",
    # capability
    "GitManager",
]
