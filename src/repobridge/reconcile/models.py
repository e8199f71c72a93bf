"""Change, plan and result types for repository reconciliation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from repobridge.host.models import RepoRef


class ChangeStatus(str, Enum):
    """Whole-file classification of one path.

    MODIFIED means exactly one side changed relative to a common
    ancestor. No ancestor is tracked, so the two-way diff never
    produces it; it exists for a future three-way mode.
    """

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    CONFLICT = "conflict"

    @property
    def order(self) -> int:
        return _STATUS_ORDER[self]


_STATUS_ORDER = {
    ChangeStatus.CONFLICT: 0,
    ChangeStatus.MODIFIED: 1,
    ChangeStatus.ADDED: 2,
    ChangeStatus.DELETED: 3,
}


class FileChange(BaseModel):
    """One path that differs between source and target.

    Created by diff(); afterwards only ResolutionState writes to it.
    """

    path: str
    status: ChangeStatus
    resolved: bool = False
    resolved_content: str | None = None
    source_content: str | None = Field(
        default=None, description="Loaded on demand for review"
    )
    target_content: str | None = Field(
        default=None, description="Loaded on demand for review"
    )

    def sort_key(self) -> tuple[int, str]:
        return (self.status.order, self.path)


class PendingFile(BaseModel):
    """Fully hydrated file ready to be committed."""

    path: str
    content: str


class FolderMapping(BaseModel):
    """Where a file is read from and where it is written to."""

    path: str
    source_path: str


class CommitTarget(BaseModel):
    repo: RepoRef
    branch: str | None = None
    message: str


class CommitPlan(BaseModel):
    """Files to push to one branch in one push."""

    files: list[PendingFile]
    target: CommitTarget

    @model_validator(mode="after")
    def _paths_unique(self) -> CommitPlan:
        seen: set[str] = set()
        for f in self.files:
            if f.path in seen:
                raise ValueError(f"Duplicate path in commit plan: {f.path}")
            seen.add(f.path)
        return self

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]


class WriteStrategy(str, Enum):
    GIT_DATA = "git-data"
    CONTENTS = "contents"


class PushResult(BaseModel):
    commit_id: str
    strategy: WriteStrategy
    files_written: list[str] = Field(default_factory=list)


# Reads the text of a path from one side; None when missing
ContentFetcher = Callable[[str], Awaitable[str | None]]
