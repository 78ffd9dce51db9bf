"""
Data models for the backlog (PRD) document.
"""

from dataclasses import dataclass, field


@dataclass
class Story:
    """A single unit of backlog work.

    Stories are the unit of work for storyloop: each run iteration
    attempts exactly one story. Only `passes` changes during a run.
    """
    id: str                                    # US-001
    title: str
    description: str
    acceptance_criteria: list[str] = field(default_factory=list)
    priority: float = 0                        # Lower runs first
    passes: bool = False
    notes: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Story":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            acceptance_criteria=list(data.get("acceptanceCriteria", [])),
            priority=data["priority"],
            passes=data["passes"],
            notes=data.get("notes", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "acceptanceCriteria": list(self.acceptance_criteria),
            "priority": self.priority,
            "passes": self.passes,
            "notes": self.notes,
        }


@dataclass
class Backlog:
    """Project backlog keyed to a single target branch."""
    project: str
    branch_name: str
    description: str
    stories: list[Story] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Backlog":
        return cls(
            project=data["project"],
            branch_name=data["branchName"],
            description=data["description"],
            stories=[Story.from_dict(s) for s in data["userStories"]],
        )

    def to_dict(self) -> dict:
        return {
            "project": self.project,
            "branchName": self.branch_name,
            "description": self.description,
            "userStories": [s.to_dict() for s in self.stories],
        }

    def get(self, story_id: str) -> Story | None:
        for story in self.stories:
            if story.id == story_id:
                return story
        return None

    def duplicate_ids(self) -> list[str]:
        seen: set[str] = set()
        dupes = []
        for story in self.stories:
            if story.id in seen and story.id not in dupes:
                dupes.append(story.id)
            seen.add(story.id)
        return dupes
