"""PlanMerge node - build the merged file list and destination."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from repobridge.core.config import State
from repobridge.core.log import logger
from repobridge.reconcile.models import CommitPlan, CommitTarget, PushResult
from repobridge.reconcile.planner import build_file_list
from repobridge.workflow.fetch import content_fetcher
from repobridge.workflow.nodes.commit import Commit


@dataclass
class PlanMerge(BaseNode[State, None, PushResult | None]):
    """Hydrate the union of both repositories into a commit plan."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> Commit | End[PushResult | None]:
        """Fetch contents, then pick or create the destination.

        The destination repository is created only after every file
        was read, so a failed read leaves nothing behind.

        Returns:
            Commit: Plan ready
            End: Nothing to push
        """
        merge = ctx.state.runtime.merge
        config = ctx.state.config.merge

        files = await build_file_list(
            merge.changes,
            content_fetcher(merge.gateway, merge.credential, merge.source),
            content_fetcher(
                merge.gateway, merge.credential, merge.target, merge.target_ref
            ),
            config.concurrency,
        )
        if not files:
            logger.warn(
                "Nothing to merge: both repositories may be empty "
                "or identical"
            )
            merge.status = "nothing-to-push"
            return End(None)

        if merge.new_repo_name is not None:
            name = merge.new_repo_name or (
                f"{merge.source.name}-{merge.target.name}-merged"
            )
            merge.destination = await merge.gateway.create_repository(
                merge.credential,
                name,
                f"Merged from {merge.source.full_name}",
                merge.new_repo_private,
            )
            logger.info(
                "Created destination repository",
                repo=merge.destination.full_name,
            )
            # Newly created repositories are not writable immediately
            await asyncio.sleep(config.new_repo_settle_seconds)
        else:
            merge.destination = merge.target

        merge.plan = CommitPlan(
            files=files,
            target=CommitTarget(
                repo=merge.destination,
                branch=merge.branch,
                message=merge.message or config.commit_message,
            ),
        )
        logger.info(
            f"Planned {len(files)} file(s)",
            destination=merge.destination.full_name,
        )
        return Commit()
