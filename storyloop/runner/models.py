"""
Run state records persisted in .storyloop/state.json.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from storyloop.lib.constants import STATE_VERSION
from storyloop.workflow.fsm import IterationStatus


@dataclass
class Iteration:
    """One attempt at one story."""
    story_id: str
    status: IterationStatus
    start_sha: str                       # Rollback target
    end_sha: Optional[str] = None        # Set on completion only
    retry_count: int = 0                 # Failed attempts so far for this story
    started_at: Optional[str] = None     # ISO timestamps
    completed_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Iteration":
        return cls(
            story_id=data["storyId"],
            status=IterationStatus(data["status"]),
            start_sha=data["startSha"],
            end_sha=data.get("endSha"),
            retry_count=data.get("retryCount", 0),
            started_at=data.get("startedAt"),
            completed_at=data.get("completedAt"),
            error=data.get("error"),
        )

    def to_dict(self) -> dict:
        data = {
            "storyId": self.story_id,
            "status": self.status.value,
            "startSha": self.start_sha,
            "retryCount": self.retry_count,
        }
        # Optional keys are omitted rather than written as null
        optional = {
            "endSha": self.end_sha,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "error": self.error,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class RunState:
    """Durable progress of a run on one branch."""
    branch_name: str
    max_iterations: int
    current_iteration: int = 0
    iterations: list[Iteration] = field(default_factory=list)
    blocked_stories: list[str] = field(default_factory=list)
    started_at: str = ""
    last_updated_at: str = ""
    version: int = STATE_VERSION

    @classmethod
    def fresh(cls, branch_name: str, max_iterations: int) -> "RunState":
        now = datetime.now().isoformat()
        return cls(
            branch_name=branch_name,
            max_iterations=max_iterations,
            started_at=now,
            last_updated_at=now,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "RunState":
        return cls(
            version=data["version"],
            branch_name=data["branchName"],
            current_iteration=data["currentIteration"],
            max_iterations=data["maxIterations"],
            iterations=[Iteration.from_dict(i) for i in data["iterations"]],
            blocked_stories=list(data["blockedStories"]),
            started_at=data["startedAt"],
            last_updated_at=data["lastUpdatedAt"],
        )

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "branchName": self.branch_name,
            "currentIteration": self.current_iteration,
            "maxIterations": self.max_iterations,
            "iterations": [i.to_dict() for i in self.iterations],
            "blockedStories": list(self.blocked_stories),
            "startedAt": self.started_at,
            "lastUpdatedAt": self.last_updated_at,
        }
