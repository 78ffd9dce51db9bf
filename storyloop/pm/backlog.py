"""
Backlog document I/O.

The backlog is a JSON document (prd.json by default) read once at run
start and rewritten wholesale whenever a story's completion flag changes.
"""

import json
import logging
from pathlib import Path

from storyloop.lib.validate import ValidationError, validate, validate_before_write
from storyloop.pm.models import Backlog

logger = logging.getLogger(__name__)


class BacklogError(Exception):
    """Backlog file missing or malformed."""


def load_backlog(path: Path) -> Backlog:
    """Load and validate the backlog document.

    Raises:
        BacklogError: if the file is missing, not JSON, fails schema
            validation or contains duplicate story ids
    """
    if not path.exists():
        raise BacklogError(f"Backlog not found: {path}")

    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise BacklogError(f"Failed to load backlog {path}: {e}") from None

    try:
        validate(data, "backlog")
    except ValidationError as e:
        raise BacklogError(f"Invalid backlog {path}: {e}") from None

    backlog = Backlog.from_dict(data)
    dupes = backlog.duplicate_ids()
    if dupes:
        raise BacklogError(f"Invalid backlog {path}: duplicate story ids {', '.join(dupes)}")

    return backlog


def save_backlog(path: Path, backlog: Backlog) -> None:
    """Rewrite the backlog document."""
    data = backlog.to_dict()
    validate_before_write(data, "backlog", path)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(data, indent=2) + "\n")
    tmp_path.replace(path)
    logger.debug(f"Saved backlog to {path}")


def mark_story_complete(path: Path, backlog: Backlog, story_id: str) -> bool:
    """Set passes=True on a story and persist immediately.

    Returns False if the story id is not in the backlog.
    """
    story = backlog.get(story_id)
    if story is None:
        logger.warning(f"Cannot mark unknown story {story_id} complete")
        return False
    story.passes = True
    save_backlog(path, backlog)
    return True
