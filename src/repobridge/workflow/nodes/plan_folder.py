"""Folder mode nodes - import a repository into a subfolder of
another, or push that subfolder back."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from repobridge.core.config import State
from repobridge.core.log import logger
from repobridge.reconcile.models import (
    CommitPlan,
    CommitTarget,
    PendingFile,
    PushResult,
)
from repobridge.reconcile.planner import (
    build_folder_import,
    hydrate_folder,
    normalize_prefix,
    strip_folder_export,
)
from repobridge.workflow.fetch import content_fetcher, tree_or_empty
from repobridge.workflow.nodes.commit import Commit


def _plan_or_end(
    ctx: GraphRunContext[State],
    files: list[PendingFile],
    default_message: str,
) -> Commit | End[PushResult | None]:
    merge = ctx.state.runtime.merge
    if not files:
        logger.warn(
            "No files to copy",
            source=merge.source.full_name,
            prefix=merge.prefix,
        )
        merge.status = "nothing-to-push"
        return End(None)

    merge.plan = CommitPlan(
        files=files,
        target=CommitTarget(
            repo=merge.destination,
            branch=merge.branch,
            message=merge.message or default_message,
        ),
    )
    logger.info(
        f"Planned {len(files)} file(s)",
        destination=merge.destination.full_name,
    )
    return Commit()


@dataclass
class PlanFolderImport(BaseNode[State, None, PushResult | None]):
    """Copy every source file to <prefix>/<path> in the target."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> Commit | End[PushResult | None]:
        merge = ctx.state.runtime.merge
        prefix = normalize_prefix(
            merge.prefix or ctx.state.config.merge.folder_prefix
        )
        merge.prefix = prefix
        merge.destination = merge.target

        tree = await tree_or_empty(merge.gateway, merge.credential, merge.source)
        mappings = build_folder_import(tree, prefix)
        files = await hydrate_folder(
            mappings,
            content_fetcher(merge.gateway, merge.credential, merge.source),
            ctx.state.config.merge.concurrency,
        )
        return _plan_or_end(
            ctx,
            files,
            f"Pull latest from {merge.source.full_name} into /{prefix}/",
        )


@dataclass
class PlanFolderExport(BaseNode[State, None, PushResult | None]):
    """Copy <prefix>/<path> files of the target back to the source."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> Commit | End[PushResult | None]:
        merge = ctx.state.runtime.merge
        prefix = normalize_prefix(
            merge.prefix or ctx.state.config.merge.folder_prefix
        )
        merge.prefix = prefix
        merge.destination = merge.source

        tree = await tree_or_empty(merge.gateway, merge.credential, merge.target)
        mappings = strip_folder_export(tree, prefix)
        files = await hydrate_folder(
            mappings,
            content_fetcher(merge.gateway, merge.credential, merge.target),
            ctx.state.config.merge.concurrency,
        )
        return _plan_or_end(
            ctx,
            files,
            f"Push /{prefix}/ from {merge.target.full_name}",
        )
