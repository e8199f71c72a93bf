"""Commit node - push the plan to the destination branch."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from repobridge.core.config import State
from repobridge.reconcile.models import PushResult
from repobridge.reconcile.writer import CommitWriter


@dataclass
class Commit(BaseNode[State, None, PushResult | None]):
    """Write the planned files in as few commits as the host allows."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[PushResult | None]:
        """Push the plan built by the previous node.

        Returns:
            End[PushResult]: Commit id and the strategy used
        """
        merge = ctx.state.runtime.merge
        writer = CommitWriter(
            merge.gateway,
            merge.credential,
            ctx.state.config.merge.concurrency,
        )
        merge.result = await writer.commit(merge.plan)
        merge.status = "complete"
        return End(merge.result)
