"""
Backlog module for storyloop.

Loads the PRD backlog, persists story completion and picks the next
story to work on.
"""

from storyloop.pm.models import Backlog, Story
from storyloop.pm.backlog import (
    BacklogError,
    load_backlog,
    save_backlog,
    mark_story_complete,
)
from storyloop.pm.picker import StoryPicker

__all__ = [
    "Backlog",
    "Story",
    "BacklogError",
    "load_backlog",
    "save_backlog",
    "mark_story_complete",
    "StoryPicker",
]
