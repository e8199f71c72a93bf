"""Analyze node - fetch both trees and diff them."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from repobridge.core.config import State
from repobridge.core.log import logger
from repobridge.reconcile.diff import diff, summarize
from repobridge.workflow.fetch import tree_or_empty
from repobridge.workflow.nodes.resolve import Resolve


@dataclass
class Analyze(BaseNode[State]):
    """Compare the source and target trees path by path."""

    async def run(self, ctx: GraphRunContext[State]) -> Resolve:
        """Fetch both trees concurrently and classify every path.

        An empty source is an error; an empty target just means
        every source file is added.

        Returns:
            Resolve: Apply resolutions to the change list
        """
        merge = ctx.state.runtime.merge
        gateway = merge.gateway

        with logger.span(
            "Fetching trees",
            source=merge.source.full_name,
            target=merge.target.full_name,
        ):
            source_tree, target_tree = await asyncio.gather(
                gateway.get_tree(merge.credential, merge.source),
                tree_or_empty(
                    gateway, merge.credential, merge.target, merge.target_ref
                ),
            )

        merge.changes = diff(source_tree, target_tree)

        counts = summarize(merge.changes)
        logger.info(
            f"Found {len(merge.changes)} changed path(s)",
            **{status.value: count for status, count in counts.items()},
        )
        return Resolve()
