"""Resolve node - apply conflict resolutions and gate on leftovers."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from repobridge.core.config import State
from repobridge.core.log import logger
from repobridge.reconcile.models import PushResult
from repobridge.reconcile.resolution import ResolutionState
from repobridge.workflow.fetch import content_fetcher
from repobridge.workflow.nodes.plan_merge import PlanMerge


@dataclass
class Resolve(BaseNode[State, None, PushResult | None]):
    """Resolve conflicts from the bulk policy and custom contents."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> PlanMerge | End[PushResult | None]:
        """Apply resolutions, then stop on a dry run or unresolved
        conflicts.

        Custom per-path contents are applied after the bulk policy
        so they win over it.

        Returns:
            PlanMerge: Conflicts handled, build the file list
            End: Dry run, or conflicts left and not allowed
        """
        merge = ctx.state.runtime.merge
        state = ResolutionState(merge.changes)

        if merge.resolve_policy in ("source", "target"):
            await state.load_contents(
                content_fetcher(merge.gateway, merge.credential, merge.source),
                content_fetcher(
                    merge.gateway, merge.credential, merge.target, merge.target_ref
                ),
                ctx.state.config.merge.concurrency,
            )
            state.resolve_all(prefer_source=merge.resolve_policy == "source")

        for path, content in merge.resolutions.items():
            if not state.resolve_one(path, content):
                logger.warn("No changed path matches resolution", path=path)

        if merge.dry_run:
            for change in merge.changes:
                logger.info(
                    f"{change.status.value:>8} {change.path}",
                    resolved=change.resolved,
                )
            merge.status = "dry-run"
            return End(None)

        unresolved = state.unresolved_conflicts()
        if unresolved and not merge.allow_unresolved:
            for change in unresolved:
                logger.warn("Unresolved conflict", path=change.path)
            logger.error(
                f"{len(unresolved)} unresolved conflict(s); resolve them "
                "or pass --allow-unresolved to take the source version"
            )
            merge.status = "gated"
            return End(None)
        if unresolved:
            logger.warn(
                "Unresolved conflicts default to the source version",
                count=len(unresolved),
            )

        return PlanMerge()
