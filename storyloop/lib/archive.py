"""
Archive the previous run's backlog and progress log when the branch changes.

The branch of the last run is remembered in .storyloop/last-branch. A run
for a different branch copies prd.json and progress.txt into
archive/<YYYY-MM-DD>-<branch>/ and starts a fresh progress log.
"""

import logging
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from storyloop.lib.constants import ARCHIVE_DIR, BRANCH_PREFIX, LAST_BRANCH_FILE, STATE_DIR

logger = logging.getLogger(__name__)


class ArchiveManager:
    def __init__(self, cwd: Path, backlog_path: str = "prd.json", progress_path: str = "progress.txt"):
        self.backlog_path = cwd / backlog_path
        self.progress_path = cwd / progress_path
        self.last_branch_path = cwd / STATE_DIR / LAST_BRANCH_FILE
        self.archive_dir = cwd / ARCHIVE_DIR

    def get_last_branch(self) -> Optional[str]:
        if not self.last_branch_path.exists():
            return None
        try:
            return self.last_branch_path.read_text().strip() or None
        except OSError as e:
            logger.warning(f"Could not read {self.last_branch_path}: {e}")
            return None

    def save_last_branch(self, branch_name: str) -> None:
        self.last_branch_path.parent.mkdir(parents=True, exist_ok=True)
        self.last_branch_path.write_text(branch_name + "\n")

    def should_archive(self, current_branch: str) -> bool:
        last_branch = self.get_last_branch()
        return last_branch is not None and last_branch != current_branch

    def archive(self, branch_name: str, today: Optional[date] = None) -> Optional[Path]:
        """Copy backlog and progress log into the archive. Returns the folder, if any."""
        if not self.backlog_path.exists() and not self.progress_path.exists():
            logger.debug("No files to archive")
            return None

        today = today or date.today()
        folder_name = branch_name.removeprefix(BRANCH_PREFIX).replace("/", "-")
        archive_path = self.archive_dir / f"{today.isoformat()}-{folder_name}"
        archive_path.mkdir(parents=True, exist_ok=True)

        for source in (self.backlog_path, self.progress_path):
            if source.exists():
                shutil.copy2(source, archive_path / source.name)

        logger.info(f"Archived previous run to: {archive_path}")
        return archive_path

    def reset_progress_file(self) -> None:
        self.progress_path.parent.mkdir(parents=True, exist_ok=True)
        self.progress_path.write_text(
            f"# storyloop progress log\nStarted: {datetime.now().isoformat()}\n---\n"
        )

    def archive_if_branch_changed(self, current_branch: str) -> Optional[Path]:
        archive_path = None
        if self.should_archive(current_branch):
            archive_path = self.archive(self.get_last_branch())
            self.reset_progress_file()
        self.save_last_branch(current_branch)
        return archive_path

    def initialize_progress_file(self) -> None:
        if not self.progress_path.exists():
            self.reset_progress_file()


def append_progress(progress_path: Path, message: str) -> None:
    """Append a timestamped line to the progress log."""
    timestamp = datetime.now().isoformat()
    progress_path.parent.mkdir(parents=True, exist_ok=True)
    with open(progress_path, "a") as f:
        f.write(f"[{timestamp}] {message}\n")
