"""Tests for storyloop.runner.verification module."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from storyloop.lib.config import VerificationCommand
from storyloop.runner.verification import VerificationRunner


def completed(returncode: int, stdout: str = "", stderr: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestVerificationRunner:
    """Test VerificationRunner."""

    def test_empty_pipeline_passes(self, tmp_path):
        result = VerificationRunner([], tmp_path).run()
        assert result.success
        assert result.results == []

    @patch("storyloop.runner.verification.subprocess.run")
    def test_all_pass(self, mock_run, tmp_path):
        mock_run.return_value = completed(0, "ok\n")
        commands = [VerificationCommand("tests", "pytest -q"), VerificationCommand("lint", "ruff check .")]
        result = VerificationRunner(commands, tmp_path, timeout=60).run()

        assert result.success
        assert [r.name for r in result.results] == ["tests", "lint"]
        kwargs = mock_run.call_args.kwargs
        assert kwargs["shell"] is True
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["timeout"] == 60

    @patch("storyloop.runner.verification.subprocess.run")
    def test_required_failure_fails_pipeline(self, mock_run, tmp_path):
        mock_run.side_effect = [completed(1, "", "2 failed"), completed(0)]
        commands = [VerificationCommand("tests", "pytest"), VerificationCommand("build", "make")]
        result = VerificationRunner(commands, tmp_path).run()

        assert not result.success
        assert len(result.results) == 2  # later checks still run
        assert result.failures[0].name == "tests"
        assert "2 failed" in result.failures[0].output

    @patch("storyloop.runner.verification.subprocess.run")
    def test_optional_failure_does_not_fail(self, mock_run, tmp_path):
        mock_run.side_effect = [completed(0), completed(1, "style")]
        commands = [
            VerificationCommand("tests", "pytest"),
            VerificationCommand("lint", "ruff check .", optional=True),
        ]
        result = VerificationRunner(commands, tmp_path).run()
        assert result.success
        assert [r.name for r in result.failures] == ["lint"]

    @patch("storyloop.runner.verification.subprocess.run")
    def test_timeout_is_failure(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="pytest", timeout=5)
        result = VerificationRunner([VerificationCommand("tests", "pytest")], tmp_path, timeout=5).run()
        assert not result.success
        assert "Timed out after 5s" in result.results[0].output

    @patch("storyloop.runner.verification.subprocess.run")
    def test_dry_run_skips_execution(self, mock_run, tmp_path):
        commands = [VerificationCommand("tests", "pytest")]
        result = VerificationRunner(commands, tmp_path, dry_run=True).run()
        assert result.success
        assert result.results[0].output == "[dry run] skipped"
        mock_run.assert_not_called()

    def test_real_shell_command(self, tmp_path):
        commands = [
            VerificationCommand("pass", "echo hello"),
            VerificationCommand("fail", "exit 3"),
        ]
        result = VerificationRunner(commands, Path(tmp_path)).run()
        assert result.results[0].success
        assert "hello" in result.results[0].output
        assert not result.results[1].success
        assert not result.success
