"""Git diff operations."""

from pathlib import Path

from storyloop.git.runner import run_git


def get_files_changed_since(repo: Path, sha: str) -> list[str]:
    """Get files that differ between sha and HEAD."""
    result = run_git(["diff", "--name-only", sha, "HEAD"], repo)
    if not result.success:
        return []
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]
