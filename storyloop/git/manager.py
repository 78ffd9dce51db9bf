"""Version-control capability used by the run loop.

Wraps the function-level git helpers for a single repository. Queries
return parsed values; operations the loop cannot continue without
(reset, checkout, commit) raise GitError on failure.
"""

import logging
from pathlib import Path

from storyloop.git.branch import (
    branch_exists,
    checkout_branch,
    create_branch,
    get_commit_sha,
    get_commits_between,
    get_current_branch,
    get_main_branch,
)
from storyloop.git.commit import clean_untracked, create_commit, reset_hard, stage_all
from storyloop.git.diff import get_files_changed_since
from storyloop.git.runner import GitError
from storyloop.git.status import has_uncommitted_changes

logger = logging.getLogger(__name__)


class GitManager:
    def __init__(self, repo: Path):
        self.repo = repo

    def get_current_sha(self) -> str:
        sha = get_commit_sha(self.repo)
        if sha is None:
            raise GitError(["rev-parse", "HEAD"], "could not resolve HEAD (empty repository?)")
        return sha

    def get_current_branch(self) -> str | None:
        return get_current_branch(self.repo)

    def get_main_branch(self) -> str:
        return get_main_branch(self.repo)

    def branch_exists(self, name: str) -> bool:
        return branch_exists(self.repo, name)

    def checkout_or_create(self, name: str, start_point: str | None = None) -> None:
        """Check out name, creating it from start_point (main branch by default)."""
        if self.branch_exists(name):
            logger.debug(f"Checking out branch: {name}")
            checkout_branch(self.repo, name).check()
            return
        start_point = start_point or self.get_main_branch()
        logger.debug(f"Creating branch: {name} from {start_point}")
        create_branch(self.repo, name, start_point).check()

    def ensure_branch(self, name: str) -> bool:
        """Make name the checked-out branch. Returns True if a switch happened."""
        if self.get_current_branch() == name:
            return False
        self.checkout_or_create(name)
        return True

    def reset_to_sha(self, sha: str) -> None:
        """Discard commits and working-tree changes made after sha."""
        logger.debug(f"Resetting to SHA: {sha}")
        reset_hard(self.repo, sha).check()
        clean_untracked(self.repo).check()

    def commit_all(self, message: str) -> str:
        """Stage everything, commit, and return the new HEAD SHA."""
        stage_all(self.repo).check()
        create_commit(self.repo, message).check()
        return self.get_current_sha()

    def files_changed_since(self, sha: str) -> list[str]:
        return get_files_changed_since(self.repo, sha)

    def commits_since(self, sha: str) -> list[str]:
        return get_commits_between(self.repo, sha)

    def is_clean(self) -> bool:
        return not has_uncommitted_changes(self.repo)
