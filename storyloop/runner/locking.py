"""
Run lock for storyloop.

Uses flock so only one loop drives a working directory at a time.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path

from storyloop.lib.constants import LOCK_FILE, STATE_DIR


class LockTimeout(Exception):
    """Lock acquisition timed out."""


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str, poll_interval: float = 1.0):
    """
    Internal helper to acquire an exclusive file lock.

    Args:
        lock_file: Path to the lock file
        timeout: Seconds to wait for lock
        lock_name: Human-readable name for error messages
        poll_interval: Seconds between attempts
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, "w")
    start = time.time()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.time() - start >= timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire {lock_name} within {timeout:g}s")
            time.sleep(poll_interval)

    try:
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()


@contextmanager
def run_lock(cwd: Path, timeout: float = 0):
    """
    Acquire the run lock for cwd, yield, release on exit.

    The lock file is never deleted; removing it would let two processes
    hold "exclusive" locks on different inodes at the same path.
    """
    lock_file = cwd / STATE_DIR / LOCK_FILE
    with _acquire_lock(lock_file, timeout, f"run lock ({lock_file})"):
        yield
