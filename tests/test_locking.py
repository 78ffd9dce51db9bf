"""Tests for storyloop.runner.locking module."""

import pytest

from storyloop.runner.locking import LockTimeout, run_lock


class TestRunLock:
    """Test run_lock."""

    def test_creates_lock_file_with_pid(self, tmp_path):
        with run_lock(tmp_path):
            lock_file = tmp_path / ".storyloop" / "run.lock"
            assert lock_file.exists()
            assert lock_file.read_text().strip().isdigit()

    def test_second_holder_times_out(self, tmp_path):
        with run_lock(tmp_path):
            with pytest.raises(LockTimeout, match="run lock"):
                with run_lock(tmp_path, timeout=0):
                    pass

    def test_released_on_exit(self, tmp_path):
        with run_lock(tmp_path):
            pass
        with run_lock(tmp_path, timeout=0):
            pass
