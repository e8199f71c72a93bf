"""Folder mode commands - keep one repository inside a subfolder
of another."""

from __future__ import annotations

from pydantic import BaseModel, Field

from repobridge.command.session import run_reconciliation
from repobridge.core.log import logger
from repobridge.reconcile.planner import normalize_prefix


class _FolderCommand(BaseModel):
    source: str = Field(description="Source repository (owner/name or URL)")
    target: str = Field(
        description="Repository holding the subfolder (owner/name or URL)"
    )
    prefix: str | None = Field(
        default=None,
        description="Subfolder in the target (config.merge.folder_prefix)",
    )
    branch: str | None = Field(
        default=None,
        description="Destination branch (default branch when omitted)",
    )
    message: str | None = Field(default=None, description="Commit message")

    def _prepare(self, state: State, operation: str) -> bool:  # noqa: F821
        merge = state.runtime.merge
        merge.operation = operation
        merge.branch = self.branch
        merge.message = self.message
        try:
            merge.prefix = normalize_prefix(
                self.prefix or state.config.merge.folder_prefix
            )
        except ValueError as e:
            logger.error(str(e))
            return False
        return True


class PullCommand(_FolderCommand):
    """Import every file of the source into <prefix>/ of the target.

    Files outside the folder are left alone. Re-running updates the
    folder with the latest source files.
    """

    async def run_workflow(self, state: State) -> int:  # noqa: F821
        from repobridge.workflow.nodes.plan_folder import PlanFolderImport

        if not self._prepare(state, "pull"):
            return 2
        logger.info(
            f"Pulling {self.source} into {self.target}/"
            f"{state.runtime.merge.prefix}/"
        )
        return await run_reconciliation(
            state, PlanFolderImport(), self.source, self.target
        )


class PushCommand(_FolderCommand):
    """Copy the files under <prefix>/ of the target back to the
    root of the source."""

    async def run_workflow(self, state: State) -> int:  # noqa: F821
        from repobridge.workflow.nodes.plan_folder import PlanFolderExport

        if not self._prepare(state, "push"):
            return 2
        logger.info(
            f"Pushing {self.target}/{state.runtime.merge.prefix}/ "
            f"back to {self.source}"
        )
        return await run_reconciliation(
            state, PlanFolderExport(), self.source, self.target
        )
