"""Pytest configuration and fixtures for repobridge tests."""

import hashlib
import itertools
import tempfile
from pathlib import Path

import pytest
from pydantic import SecretStr

from repobridge.core.log import ConsoleSink, setup_logger
from repobridge.host.errors import (
    EmptyRepositoryError,
    NotFoundError,
    RepositoryNameTakenError,
    TransientHostError,
)
from repobridge.host.models import (
    BranchHead,
    Credential,
    EntryKind,
    FileContent,
    RepoRef,
    TreeEntry,
)


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only debug logging; nothing is sent to logfire.dev."""
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "repobridge-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


def blob_hash(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


class FakeGateway:
    """In-memory stand-in for GitHubGateway.

    Repositories are dicts of path -> content. Every call is
    recorded in `calls` as (method, *args) without the credential.
    `fail_on[method] = n` makes the n-th call of method raise
    TransientHostError.
    """

    def __init__(self):
        self.files: dict[str, dict[str, str]] = {}
        self.repos: dict[str, RepoRef] = {}
        self.heads: dict[str, str | None] = {}
        self.branches: dict[tuple[str, str], str] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, int] = {}
        self._counts: dict[str, int] = {}
        self._ids = itertools.count(1)
        self._blobs: dict[str, str] = {}
        self._trees: dict[str, dict[str, str]] = {}
        self._commits: dict[str, str] = {}

    def add_repo(
        self,
        full_name: str,
        files: dict[str, str] | None = None,
        empty: bool = False,
        default_branch: str = "main",
    ) -> RepoRef:
        owner, name = full_name.split("/")
        repo = RepoRef(owner=owner, name=name, default_branch=default_branch)
        self.repos[full_name] = repo
        self.files[full_name] = dict(files or {})
        if empty:
            self.heads[full_name] = None
        else:
            tree = self._new_id("tree")
            self._trees[tree] = dict(self.files[full_name])
            commit = self._new_id("commit")
            self._commits[commit] = tree
            self.heads[full_name] = commit
        return repo

    def add_branch(self, full_name: str, branch: str, files: dict[str, str]):
        """Add a branch other than the default, with its own files."""
        tree = self._new_id("tree")
        self._trees[tree] = dict(files)
        commit = self._new_id("commit")
        self._commits[commit] = tree
        self.branches[(full_name, branch)] = commit

    def branch_files(self, full_name: str, branch: str) -> dict[str, str]:
        commit = self.branches[(full_name, branch)]
        return self._trees[self._commits[commit]]

    def _files_at(self, repo: RepoRef, ref: str | None) -> dict[str, str] | None:
        if ref is None or ref == repo.default_branch:
            return self.files[repo.full_name]
        if (repo.full_name, ref) not in self.branches:
            return None
        return self.branch_files(repo.full_name, ref)

    def _new_id(self, kind: str) -> str:
        return f"{kind}-{next(self._ids)}"

    def _call(self, method: str, *args):
        self.calls.append((method, *args))
        self._counts[method] = self._counts.get(method, 0) + 1
        if self.fail_on.get(method) == self._counts[method]:
            raise TransientHostError(502, f"{method} failed")

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def get_repository(self, credential, owner, name):
        self._call("get_repository", owner, name)
        full_name = f"{owner}/{name}"
        if full_name not in self.repos:
            raise NotFoundError(404, "Not Found")
        return self.repos[full_name]

    async def get_tree(self, credential, repo, ref=None):
        self._call("get_tree", repo.full_name, ref)
        if self.heads[repo.full_name] is None:
            raise EmptyRepositoryError(409, "Git Repository is empty.")
        files = self._files_at(repo, ref)
        if files is None:
            raise EmptyRepositoryError(404, "Not Found")
        return [
            TreeEntry(
                path=path,
                kind=EntryKind.BLOB,
                content_hash=blob_hash(content),
                size_bytes=len(content),
            )
            for path, content in sorted(files.items())
        ]

    async def get_file_content(self, credential, repo, path, ref=None):
        self._call("get_file_content", repo.full_name, path, ref)
        content = (self._files_at(repo, ref) or {}).get(path)
        if content is None:
            return FileContent(exists=False)
        return FileContent(exists=True, content=content, sha=blob_hash(content))

    async def get_branch_head(self, credential, repo, branch):
        self._call("get_branch_head", repo.full_name, branch)
        commit = self.heads[repo.full_name]
        if commit is None:
            raise EmptyRepositoryError(409, "Git Repository is empty.")
        if branch != repo.default_branch:
            commit = self.branches.get((repo.full_name, branch))
            if commit is None:
                raise NotFoundError(404, f"Branch '{branch}' not found")
        return BranchHead(commit_sha=commit, tree_sha=self._commits[commit])

    async def create_blob(self, credential, repo, content):
        self._call("create_blob", repo.full_name, content)
        sha = self._new_id("blob")
        self._blobs[sha] = content
        return sha

    async def create_tree(self, credential, repo, entries, base_tree=None):
        self._call("create_tree", repo.full_name, base_tree)
        files = dict(self._trees[base_tree]) if base_tree else {}
        for entry in entries:
            files[entry.path] = self._blobs[entry.sha]
        sha = self._new_id("tree")
        self._trees[sha] = files
        return sha

    async def create_commit(self, credential, repo, message, tree, parents):
        self._call("create_commit", repo.full_name, message, tree, tuple(parents))
        sha = self._new_id("commit")
        self._commits[sha] = tree
        return sha

    async def move_ref(self, credential, repo, branch, commit_sha):
        self._call("move_ref", repo.full_name, branch, commit_sha)
        if branch != repo.default_branch:
            self.branches[(repo.full_name, branch)] = commit_sha
            return
        self.heads[repo.full_name] = commit_sha
        self.files[repo.full_name] = dict(self._trees[self._commits[commit_sha]])

    async def create_file(
        self, credential, repo, path, content, message, branch=None
    ):
        self._call("create_file", repo.full_name, path, message)
        self.files[repo.full_name][path] = content
        tree = self._new_id("tree")
        self._trees[tree] = dict(self.files[repo.full_name])
        commit = self._new_id("commit")
        self._commits[commit] = tree
        self.heads[repo.full_name] = commit
        return commit

    async def create_repository(self, credential, name, description, private):
        self._call("create_repository", name, description, private)
        owner = "me"
        if f"{owner}/{name}" in self.repos:
            raise RepositoryNameTakenError(name)
        return self.add_repo(f"{owner}/{name}", empty=True)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def credential():
    return Credential(token=SecretStr("ghp_test"))
