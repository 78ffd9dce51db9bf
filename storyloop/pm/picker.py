"""Story selection over the backlog."""

from typing import Iterable, Optional

from storyloop.pm.models import Backlog, Story


class StoryPicker:
    """Chooses the next eligible story.

    Eligible means not passing and not blocked. When target_story is set,
    only that story can ever be picked.
    """

    def __init__(self, backlog: Backlog, blocked: Iterable[str] = (),
                 target_story: Optional[str] = None):
        self.backlog = backlog
        self.blocked_ids: set[str] = set(blocked)
        self.target_story = target_story

    def update_blocked(self, blocked: Iterable[str]) -> None:
        """Replace the blocked set wholesale."""
        self.blocked_ids = set(blocked)

    def _eligible(self, story: Story) -> bool:
        return not story.passes and story.id not in self.blocked_ids

    def next_story(self) -> Story | None:
        if self.target_story:
            story = self.backlog.get(self.target_story)
            if story and self._eligible(story):
                return story
            return None

        remaining = self.remaining()
        return remaining[0] if remaining else None

    def remaining(self) -> list[Story]:
        # sorted() is stable: equal priorities keep backlog order
        return sorted(
            (s for s in self.backlog.stories if self._eligible(s)),
            key=lambda s: s.priority,
        )

    def completed(self) -> list[Story]:
        return [s for s in self.backlog.stories if s.passes]

    def blocked(self) -> list[Story]:
        return [s for s in self.backlog.stories if s.id in self.blocked_ids]

    def all_complete(self) -> bool:
        return all(s.passes for s in self.backlog.stories)

    def all_complete_or_blocked(self) -> bool:
        return all(s.passes or s.id in self.blocked_ids for s in self.backlog.stories)

    def total_count(self) -> int:
        return len(self.backlog.stories)

    def completed_count(self) -> int:
        return len(self.completed())

    def blocked_count(self) -> int:
        # Stale ids for stories no longer in the backlog don't count
        existing = {s.id for s in self.backlog.stories}
        return len(self.blocked_ids & existing)
