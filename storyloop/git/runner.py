"""Git command runner with timeout handling."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class GitError(Exception):
    """A git operation the loop depends on failed."""

    def __init__(self, args: list[str], stderr: str):
        self.git_args = args
        self.stderr = stderr
        super().__init__(f"git {' '.join(args)} failed: {stderr.strip() or 'unknown error'}")


@dataclass
class GitResult:
    """Result of a git command."""
    args: list[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def check(self) -> "GitResult":
        """Raise GitError unless the command succeeded."""
        if not self.success:
            raise GitError(self.args, self.stderr)
        return self


def run_git(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
) -> GitResult:
    """Run `git -C cwd <args>` and capture its output.

    Never raises: a timeout or a missing git binary comes back as a failed
    GitResult. Callers that cannot continue on failure use `.check()`.
    """
    cmd = ["git", "-C", str(cwd)] + args
    logger.debug(f"$ {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return GitResult(
            args=args,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            args=args,
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )
    except OSError as e:
        # git binary missing or cwd gone
        return GitResult(args=args, returncode=-1, stdout="", stderr=str(e))
