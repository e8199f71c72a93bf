"""Merge command - reconcile two repositories at the root."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from repobridge.command.session import run_reconciliation
from repobridge.core.log import logger
from repobridge.host.gateway import sanitize_repo_name


class MergeCommand(BaseModel):
    """Merge the source repository into the target at the root.

    Every path is classified as added (only in source), deleted
    (only in target, kept in the output) or conflict (in both,
    different content). Conflicts are resolved with --resolve and
    --resolution; the union of both repositories is then committed
    to the target, or to a new repository with --into.
    """

    source: str = Field(description="Source repository (owner/name or URL)")
    target: str = Field(description="Target repository (owner/name or URL)")
    into: str | None = Field(
        default=None,
        description=(
            "Create this repository and merge into it instead of the "
            "target. An empty value uses '<source>-<target>-merged'"
        ),
    )
    private: bool = Field(
        default=False,
        description="Make the repository created by --into private",
    )
    resolve: Literal["source", "target", "none"] = Field(
        default="none",
        description="Resolve every conflict to one side",
    )
    resolution: dict[str, Path] = Field(
        default_factory=dict,
        description=(
            "Custom content for a conflicting path, read from a local "
            "file: --resolution src/app.ts=./app.ts"
        ),
    )
    allow_unresolved: bool = Field(
        default=False,
        alias="allow-unresolved",
        description="Push even with unresolved conflicts (source wins)",
    )
    dry_run: bool = Field(
        default=False,
        alias="dry-run",
        description="List the changes and stop before pushing",
    )
    branch: str | None = Field(
        default=None,
        description="Destination branch (default branch when omitted)",
    )
    message: str | None = Field(
        default=None,
        description="Commit message (config.merge.commit_message)",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: State) -> int:  # noqa: F821
        """Run the merge workflow.

        Returns:
            Exit code (0=success)
        """
        from repobridge.workflow.nodes.analyze import Analyze

        merge = state.runtime.merge
        merge.operation = "merge"
        merge.new_repo_name = self.into
        merge.new_repo_private = self.private
        merge.resolve_policy = self.resolve
        merge.allow_unresolved = self.allow_unresolved
        merge.dry_run = self.dry_run
        merge.branch = self.branch
        merge.message = self.message
        try:
            merge.resolutions = {
                path: local.read_text(encoding="utf-8")
                for path, local in self.resolution.items()
            }
        except OSError as e:
            logger.error(f"Cannot read resolution file: {e}")
            return 2
        if self.into:
            try:
                sanitize_repo_name(self.into)
            except ValueError as e:
                logger.error(str(e))
                return 2

        logger.info(f"Merging {self.source} into {self.target}")
        return await run_reconciliation(
            state, Analyze(), self.source, self.target
        )
