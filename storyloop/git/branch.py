"""Git branch and revision operations."""

from pathlib import Path

from storyloop.git.runner import run_git, GitResult


def get_current_branch(repo: Path) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(repo: Path, branch: str) -> bool:
    """Check if a local branch exists."""
    result = run_git(["show-ref", "--verify", f"refs/heads/{branch}"], repo)
    return result.success


def get_commit_sha(repo: Path, ref: str = "HEAD") -> str | None:
    """Get the SHA of a ref."""
    result = run_git(["rev-parse", ref], repo)
    if result.success:
        return result.stdout.strip()
    return None


def get_main_branch(repo: Path) -> str:
    """Return "main" or "master", whichever exists (defaults to "main")."""
    for candidate in ("main", "master"):
        if branch_exists(repo, candidate):
            return candidate
    return "main"


def checkout_branch(repo: Path, branch: str) -> GitResult:
    """Check out an existing branch."""
    return run_git(["checkout", branch], repo)


def create_branch(repo: Path, branch: str, start_point: str) -> GitResult:
    """Create a branch from start_point and check it out."""
    return run_git(["checkout", "-b", branch, start_point], repo)


def get_commits_between(repo: Path, start_sha: str, end_ref: str = "HEAD") -> list[str]:
    """List commit SHAs reachable from end_ref but not start_sha (newest first)."""
    result = run_git(["log", "--format=%H", f"{start_sha}..{end_ref}"], repo)
    if not result.success:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
