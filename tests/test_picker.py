"""Tests for storyloop.pm.picker module."""

from storyloop.pm.models import Backlog, Story
from storyloop.pm.picker import StoryPicker


def make_backlog(*stories: tuple) -> Backlog:
    """Build a backlog from (id, priority, passes) tuples."""
    return Backlog(
        project="demo",
        branch_name="storyloop/demo",
        description="",
        stories=[
            Story(id=sid, title=f"Story {sid}", description="", priority=priority, passes=passes)
            for sid, priority, passes in stories
        ],
    )


class TestNextStory:
    """Test next_story selection."""

    def test_lowest_priority_first(self):
        picker = StoryPicker(make_backlog(("B", 2, False), ("A", 1, False), ("C", 3, False)))
        assert picker.next_story().id == "A"

    def test_ties_keep_backlog_order(self):
        picker = StoryPicker(make_backlog(("X", 1, False), ("Y", 1, False)))
        assert picker.next_story().id == "X"

    def test_skips_completed_and_blocked(self):
        backlog = make_backlog(("A", 1, True), ("B", 2, False), ("C", 3, False))
        picker = StoryPicker(backlog, blocked=["B"])
        assert picker.next_story().id == "C"

    def test_none_when_nothing_eligible(self):
        picker = StoryPicker(make_backlog(("A", 1, True), ("B", 2, False)), blocked=["B"])
        assert picker.next_story() is None

    def test_target_story_is_exclusive(self):
        backlog = make_backlog(("A", 1, False), ("B", 5, False))
        picker = StoryPicker(backlog, target_story="B")
        assert picker.next_story().id == "B"

    def test_target_story_completed_returns_none(self):
        backlog = make_backlog(("A", 1, False), ("B", 5, True))
        picker = StoryPicker(backlog, target_story="B")
        assert picker.next_story() is None

    def test_target_story_blocked_returns_none(self):
        backlog = make_backlog(("A", 1, False), ("B", 5, False))
        picker = StoryPicker(backlog, blocked=["B"], target_story="B")
        assert picker.next_story() is None

    def test_unknown_target_returns_none(self):
        picker = StoryPicker(make_backlog(("A", 1, False)), target_story="ZZZ")
        assert picker.next_story() is None


class TestQueries:
    """Test remaining/completed/blocked and counts."""

    def test_remaining_sorted_by_priority(self):
        picker = StoryPicker(make_backlog(("C", 3, False), ("A", 1, False), ("B", 2, True)))
        assert [s.id for s in picker.remaining()] == ["A", "C"]

    def test_completed_and_blocked_in_backlog_order(self):
        backlog = make_backlog(("A", 2, True), ("B", 1, False), ("C", 3, True), ("D", 0, False))
        picker = StoryPicker(backlog, blocked=["D", "B"])
        assert [s.id for s in picker.completed()] == ["A", "C"]
        assert [s.id for s in picker.blocked()] == ["B", "D"]

    def test_all_complete(self):
        assert StoryPicker(make_backlog(("A", 1, True), ("B", 2, True))).all_complete()
        assert not StoryPicker(make_backlog(("A", 1, True), ("B", 2, False))).all_complete()

    def test_all_complete_or_blocked(self):
        backlog = make_backlog(("A", 1, True), ("B", 2, False))
        picker = StoryPicker(backlog, blocked=["B"])
        assert picker.all_complete_or_blocked()
        assert not picker.all_complete()
        assert picker.remaining() == []

    def test_empty_backlog_is_complete(self):
        picker = StoryPicker(make_backlog())
        assert picker.all_complete()
        assert picker.next_story() is None

    def test_counts_ignore_stale_blocked_ids(self):
        backlog = make_backlog(("A", 1, True), ("B", 2, False))
        picker = StoryPicker(backlog, blocked=["B", "GONE"])
        assert picker.total_count() == 2
        assert picker.completed_count() == 1
        assert picker.blocked_count() == 1

    def test_update_blocked_replaces_set(self):
        backlog = make_backlog(("A", 1, False), ("B", 2, False))
        picker = StoryPicker(backlog, blocked=["A"])
        assert picker.next_story().id == "B"
        picker.update_blocked(["B"])
        assert picker.next_story().id == "A"
