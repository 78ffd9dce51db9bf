"""Git commit and reset operations."""

from pathlib import Path

from storyloop.git.runner import run_git, GitResult


def stage_all(repo: Path) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], repo)


def create_commit(repo: Path, message: str) -> GitResult:
    """Create a commit with the given message."""
    return run_git(["commit", "-m", message], repo)


def reset_hard(repo: Path, sha: str) -> GitResult:
    """Move HEAD, index and working tree to sha.

    Untracked files are left alone; use clean_untracked for those.
    """
    return run_git(["reset", "--hard", sha], repo)


def clean_untracked(repo: Path) -> GitResult:
    """Remove untracked files and directories (respects .gitignore)."""
    return run_git(["clean", "-fd"], repo)
