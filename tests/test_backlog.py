"""Tests for storyloop.pm.backlog module."""

import json

import pytest

from storyloop.pm.backlog import BacklogError, load_backlog, mark_story_complete, save_backlog


def backlog_data(**overrides) -> dict:
    data = {
        "project": "demo",
        "branchName": "storyloop/demo",
        "description": "Demo backlog",
        "userStories": [
            {
                "id": "US-001",
                "title": "First",
                "description": "Do the first thing",
                "acceptanceCriteria": ["it works"],
                "priority": 1,
                "passes": False,
            },
            {
                "id": "US-002",
                "title": "Second",
                "description": "Do the second thing",
                "acceptanceCriteria": [],
                "priority": 2,
                "passes": False,
                "notes": "careful",
            },
        ],
    }
    data.update(overrides)
    return data


class TestLoadBacklog:
    """Test load_backlog function."""

    def test_loads_valid_backlog(self, tmp_path):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps(backlog_data()))
        backlog = load_backlog(path)
        assert backlog.project == "demo"
        assert backlog.branch_name == "storyloop/demo"
        assert [s.id for s in backlog.stories] == ["US-001", "US-002"]
        assert backlog.stories[0].acceptance_criteria == ["it works"]
        assert backlog.stories[1].notes == "careful"

    def test_missing_file(self, tmp_path):
        with pytest.raises(BacklogError, match="not found"):
            load_backlog(tmp_path / "prd.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "prd.json"
        path.write_text("{nope")
        with pytest.raises(BacklogError, match="Failed to load"):
            load_backlog(path)

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "prd.json"
        data = backlog_data()
        del data["userStories"][0]["priority"]
        path.write_text(json.dumps(data))
        with pytest.raises(BacklogError, match="Invalid backlog"):
            load_backlog(path)

    def test_duplicate_ids(self, tmp_path):
        path = tmp_path / "prd.json"
        data = backlog_data()
        data["userStories"][1]["id"] = "US-001"
        path.write_text(json.dumps(data))
        with pytest.raises(BacklogError, match="duplicate story ids US-001"):
            load_backlog(path)


class TestSaveBacklog:
    """Test save_backlog and mark_story_complete."""

    def test_save_preserves_document(self, tmp_path):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps(backlog_data()))
        backlog = load_backlog(path)
        save_backlog(path, backlog)
        saved = json.loads(path.read_text())
        assert saved["userStories"][1]["notes"] == "careful"
        assert saved["branchName"] == "storyloop/demo"
        assert not (tmp_path / "prd.json.tmp").exists()

    def test_mark_story_complete_persists(self, tmp_path):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps(backlog_data()))
        backlog = load_backlog(path)

        assert mark_story_complete(path, backlog, "US-002") is True

        assert backlog.get("US-002").passes is True
        saved = json.loads(path.read_text())
        assert saved["userStories"][1]["passes"] is True
        assert saved["userStories"][0]["passes"] is False

    def test_mark_unknown_story(self, tmp_path, caplog):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps(backlog_data()))
        backlog = load_backlog(path)
        assert mark_story_complete(path, backlog, "US-999") is False
        assert "unknown story US-999" in caplog.text
