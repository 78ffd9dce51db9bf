"""Git status operations."""

from pathlib import Path

from storyloop.git.runner import run_git


def get_status_porcelain(repo: Path) -> str:
    """Get git status in porcelain format."""
    result = run_git(["status", "--porcelain"], repo)
    return result.stdout


def has_uncommitted_changes(repo: Path) -> bool:
    """Check if the tree has any uncommitted changes (staged, unstaged, or untracked)."""
    return bool(get_status_porcelain(repo).strip())


def has_untracked_files(repo: Path) -> bool:
    """Check for untracked files ("??" entries)."""
    return any(line.startswith("??") for line in get_status_porcelain(repo).splitlines())
