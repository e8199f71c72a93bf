"""Types returned by the repository host gateway."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr

_REPO_URL = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$"
)


class Credential(BaseModel):
    """Host API token, passed explicitly to every gateway call."""

    token: SecretStr

    model_config = ConfigDict(frozen=True)


class RepoRef(BaseModel):
    """Identity of a remote repository."""

    owner: str
    name: str
    default_branch: str = "main"
    html_url: str | None = None
    description: str | None = None
    private: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str, default_branch: str = "main") -> RepoRef:
        """Build a RepoRef from "owner/name" or a github.com URL.

        Raises:
            ValueError: If value names no owner and repository
        """
        value = value.strip()
        match = _REPO_URL.match(value)
        if match:
            owner, name = match.groups()
        else:
            owner, _, name = value.partition("/")
            if name.endswith(".git"):
                name = name[:-4]
        if not owner or not name or "/" in name:
            raise ValueError(
                f"Expected 'owner/name' or a repository URL, got {value!r}"
            )
        return cls(owner=owner, name=name, default_branch=default_branch)

    def __str__(self) -> str:
        return self.full_name


class EntryKind(str, Enum):
    BLOB = "blob"
    TREE = "tree"


class TreeEntry(BaseModel):
    """One node of a recursive tree at some ref.

    content_hash is the host's object id. It is only ever compared
    for equality.
    """

    path: str
    kind: EntryKind
    content_hash: str
    size_bytes: int | None = None

    model_config = ConfigDict(frozen=True)


class FileContent(BaseModel):
    """Result of reading one path at a ref."""

    exists: bool
    content: str | None = None
    sha: str | None = None


class HostUser(BaseModel):
    """Account that owns a credential."""

    login: str
    avatar_url: str | None = None


class BranchHead(BaseModel):
    """Commit a branch points at and that commit's root tree."""

    commit_sha: str
    tree_sha: str


class TreeWrite(BaseModel):
    """One blob entry for a tree creation call."""

    path: str
    sha: str
    mode: str = Field(default="100644")
