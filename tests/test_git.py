"""Tests for storyloop.git module."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from storyloop.git.branch import get_commits_between, get_main_branch
from storyloop.git.diff import get_files_changed_since
from storyloop.git.manager import GitManager
from storyloop.git.runner import GitError, GitResult, run_git
from storyloop.git.status import has_uncommitted_changes, has_untracked_files


def ok(stdout: str = "", args=None) -> GitResult:
    return GitResult(args=args or [], returncode=0, stdout=stdout, stderr="")


def fail(stderr: str = "fatal", args=None) -> GitResult:
    return GitResult(args=args or [], returncode=1, stdout="", stderr=stderr)


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        assert ok().success is True

    def test_failure_when_returncode_nonzero(self):
        assert fail().success is False

    def test_failure_when_timed_out(self):
        result = GitResult(args=[], returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_check_raises(self):
        with pytest.raises(GitError, match="git reset --hard abc failed: bad ref"):
            fail("bad ref", args=["reset", "--hard", "abc"]).check()


class TestRunGit:
    """Test run_git function."""

    @patch("storyloop.git.runner.subprocess.run")
    def test_returns_result_on_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="output", stderr="")
        result = run_git(["status"], Path("/tmp"))
        assert result.success
        assert result.stdout == "output"
        assert result.args == ["status"]
        mock_run.assert_called_once()

    @patch("storyloop.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["status"], Path("/tmp"))
        assert not result.success
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("storyloop.git.runner.subprocess.run")
    def test_handles_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        result = run_git(["status"], Path("/tmp"))
        assert not result.success

    @patch("storyloop.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status", "--porcelain"], Path("/my/repo"))
        assert mock_run.call_args[0][0] == ["git", "-C", "/my/repo", "status", "--porcelain"]


class TestStatus:
    """Test status helpers."""

    @patch("storyloop.git.status.run_git")
    def test_clean(self, mock_run):
        mock_run.return_value = ok("")
        assert has_uncommitted_changes(Path("/tmp")) is False

    @patch("storyloop.git.status.run_git")
    def test_dirty(self, mock_run):
        mock_run.return_value = ok(" M file.txt\n")
        assert has_uncommitted_changes(Path("/tmp")) is True
        assert has_untracked_files(Path("/tmp")) is False

    @patch("storyloop.git.status.run_git")
    def test_untracked(self, mock_run):
        mock_run.return_value = ok("?? new.py\n")
        assert has_untracked_files(Path("/tmp")) is True


class TestBranchAndDiff:
    """Test branch/diff parsing helpers."""

    @patch("storyloop.git.branch.run_git")
    def test_main_branch_prefers_main(self, mock_run):
        mock_run.return_value = ok()
        assert get_main_branch(Path("/tmp")) == "main"

    @patch("storyloop.git.branch.run_git")
    def test_main_branch_falls_back_to_master(self, mock_run):
        mock_run.side_effect = [fail(), ok()]
        assert get_main_branch(Path("/tmp")) == "master"

    @patch("storyloop.git.branch.run_git")
    def test_main_branch_default(self, mock_run):
        mock_run.return_value = fail()
        assert get_main_branch(Path("/tmp")) == "main"

    @patch("storyloop.git.branch.run_git")
    def test_commits_between(self, mock_run):
        mock_run.return_value = ok("c2\nc1\n")
        assert get_commits_between(Path("/tmp"), "base") == ["c2", "c1"]
        assert mock_run.call_args[0][0] == ["log", "--format=%H", "base..HEAD"]

    @patch("storyloop.git.diff.run_git")
    def test_files_changed_since(self, mock_run):
        mock_run.return_value = ok("a.py\nsrc/b.py\n")
        assert get_files_changed_since(Path("/tmp"), "abc") == ["a.py", "src/b.py"]

    @patch("storyloop.git.diff.run_git")
    def test_files_changed_since_failure(self, mock_run):
        mock_run.return_value = fail()
        assert get_files_changed_since(Path("/tmp"), "abc") == []


class TestGitManager:
    """Test GitManager."""

    @patch("storyloop.git.commit.run_git")
    def test_reset_to_sha_resets_and_cleans(self, mock_run):
        mock_run.return_value = ok()
        GitManager(Path("/repo")).reset_to_sha("abc123")
        assert mock_run.call_args_list == [
            call(["reset", "--hard", "abc123"], Path("/repo")),
            call(["clean", "-fd"], Path("/repo")),
        ]

    @patch("storyloop.git.commit.run_git")
    def test_reset_failure_raises(self, mock_run):
        mock_run.return_value = fail("unknown revision", args=["reset", "--hard", "zzz"])
        with pytest.raises(GitError, match="unknown revision"):
            GitManager(Path("/repo")).reset_to_sha("zzz")

    @patch("storyloop.git.branch.run_git")
    def test_current_sha(self, mock_run):
        mock_run.return_value = ok("abc123\n")
        assert GitManager(Path("/repo")).get_current_sha() == "abc123"

    @patch("storyloop.git.branch.run_git")
    def test_current_sha_unresolvable(self, mock_run):
        mock_run.return_value = fail()
        with pytest.raises(GitError):
            GitManager(Path("/repo")).get_current_sha()

    @patch("storyloop.git.branch.run_git")
    def test_ensure_branch_noop_when_current(self, mock_run):
        mock_run.return_value = ok("storyloop/demo\n")
        assert GitManager(Path("/repo")).ensure_branch("storyloop/demo") is False
        mock_run.assert_called_once()

    @patch("storyloop.git.branch.run_git")
    def test_ensure_branch_creates_from_main(self, mock_run):
        mock_run.side_effect = [
            ok("main\n"),  # branch --show-current
            fail(),        # show-ref storyloop/demo
            ok(),          # show-ref main
            ok(),          # checkout -b
        ]
        assert GitManager(Path("/repo")).ensure_branch("storyloop/demo") is True
        assert mock_run.call_args_list[-1] == call(
            ["checkout", "-b", "storyloop/demo", "main"], Path("/repo")
        )

    @patch("storyloop.git.branch.run_git")
    def test_checkout_existing_branch(self, mock_run):
        mock_run.side_effect = [ok(), ok()]
        GitManager(Path("/repo")).checkout_or_create("storyloop/demo")
        assert mock_run.call_args_list[-1] == call(["checkout", "storyloop/demo"], Path("/repo"))

    @patch("storyloop.git.status.run_git")
    def test_is_clean(self, mock_run):
        mock_run.return_value = ok("")
        assert GitManager(Path("/repo")).is_clean() is True

    @patch("storyloop.git.diff.run_git")
    def test_files_changed_since(self, mock_run):
        mock_run.return_value = ok("a.py\n")
        assert GitManager(Path("/repo")).files_changed_since("abc") == ["a.py"]

    @patch("storyloop.git.branch.run_git")
    def test_commits_since(self, mock_run):
        mock_run.return_value = ok("c1\n")
        assert GitManager(Path("/repo")).commits_since("abc") == ["c1"]

    @patch("storyloop.git.branch.run_git")
    @patch("storyloop.git.commit.run_git")
    def test_commit_all(self, mock_commit_run, mock_branch_run):
        mock_commit_run.return_value = ok()
        mock_branch_run.return_value = ok("def456\n")
        assert GitManager(Path("/repo")).commit_all("US-001: done") == "def456"
        assert mock_commit_run.call_args_list == [
            call(["add", "-A"], Path("/repo")),
            call(["commit", "-m", "US-001: done"], Path("/repo")),
        ]
