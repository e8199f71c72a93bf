"""Commit a final file list to a destination branch."""

from __future__ import annotations

from repobridge.core.log import logger
from repobridge.host.errors import (
    EmptyRepositoryError,
    GatewayError,
    PartialWriteError,
)
from repobridge.host.gateway import GitHubGateway
from repobridge.host.models import BranchHead, Credential, RepoRef, TreeWrite
from repobridge.reconcile.fanout import gather_bounded
from repobridge.reconcile.models import (
    CommitPlan,
    PendingFile,
    PushResult,
    WriteStrategy,
)


class CommitWriter:
    """Writes files to a branch in one commit when the host allows it.

    Two strategies:
    - git-data: blobs, one tree over the current tree, one commit,
      then the ref move. The ref move is the last call, so any
      failure before it leaves the branch untouched.
    - contents: one file-write commit per file. Used only when the
      branch has no commits, since the host refuses low level
      writes against an empty repository.
    """

    def __init__(
        self,
        gateway: GitHubGateway,
        credential: Credential,
        concurrency: int = 8,
    ):
        self.gateway = gateway
        self.credential = credential
        self.concurrency = concurrency

    async def commit(self, plan: CommitPlan) -> PushResult:
        return await self.push(
            plan.target.repo,
            plan.files,
            plan.target.message,
            branch=plan.target.branch,
        )

    async def push(
        self,
        repo: RepoRef,
        files: list[PendingFile],
        message: str,
        branch: str | None = None,
    ) -> PushResult:
        """Commit files to branch (default branch when omitted).

        Raises:
            ValueError: If files is empty
            PartialWriteError: The contents strategy failed after
                committing at least one file
            GatewayError: Any other host failure, unchanged
        """
        if not files:
            raise ValueError("Nothing to push: the file list is empty")
        branch = branch or repo.default_branch

        try:
            head = await self.gateway.get_branch_head(
                self.credential, repo, branch
            )
        except EmptyRepositoryError:
            logger.info(
                "Branch has no commits, writing files one by one",
                repo=repo.full_name,
                branch=branch,
            )
            return await self._push_contents(repo, files, message, branch)

        return await self._push_git_data(repo, files, message, branch, head)

    async def _push_git_data(
        self,
        repo: RepoRef,
        files: list[PendingFile],
        message: str,
        branch: str,
        head: BranchHead,
    ) -> PushResult:
        async def blob(f: PendingFile) -> TreeWrite:
            sha = await self.gateway.create_blob(self.credential, repo, f.content)
            return TreeWrite(path=f.path, sha=sha)

        with logger.span(
            "Committing files",
            repo=repo.full_name,
            branch=branch,
            files=len(files),
            strategy=WriteStrategy.GIT_DATA.value,
        ):
            entries = await gather_bounded(files, blob, self.concurrency)
            tree = await self.gateway.create_tree(
                self.credential, repo, entries, base_tree=head.tree_sha
            )
            commit = await self.gateway.create_commit(
                self.credential, repo, message, tree, [head.commit_sha]
            )
            await self.gateway.move_ref(self.credential, repo, branch, commit)

        logger.info(
            "Pushed commit",
            repo=repo.full_name,
            branch=branch,
            commit=commit,
            files=len(files),
        )
        return PushResult(
            commit_id=commit,
            strategy=WriteStrategy.GIT_DATA,
            files_written=[f.path for f in files],
        )

    async def _push_contents(
        self,
        repo: RepoRef,
        files: list[PendingFile],
        message: str,
        branch: str,
    ) -> PushResult:
        # The host creates the default branch on the first write to an
        # empty repository; naming it explicitly is rejected there
        write_branch = None if branch == repo.default_branch else branch
        committed: list[str] = []
        commit = ""
        for f in files:
            try:
                commit = await self.gateway.create_file(
                    self.credential, repo, f.path, f.content, message, write_branch
                )
            except GatewayError as e:
                if not committed:
                    raise
                logger.error(
                    "File write failed part way",
                    repo=repo.full_name,
                    path=f.path,
                    committed=len(committed),
                )
                raise PartialWriteError(committed, f.path, e) from e
            committed.append(f.path)
            logger.debug("Committed file", path=f.path, commit=commit)

        logger.info(
            "Pushed files individually",
            repo=repo.full_name,
            branch=branch,
            commit=commit,
            files=len(committed),
        )
        return PushResult(
            commit_id=commit,
            strategy=WriteStrategy.CONTENTS,
            files_written=committed,
        )
