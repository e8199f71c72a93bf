"""Graph workflow definition."""

from pydantic_graph import Graph

from repobridge.core.config import State
from repobridge.core.log import logger


def create_workflow():
    """Create the reconciliation workflow graph.

    Three entry points share the Commit node:
        merge: Analyze -> Resolve -> PlanMerge -> Commit
        pull:  PlanFolderImport -> Commit
        push:  PlanFolderExport -> Commit

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    from repobridge.workflow.nodes import (
        Analyze,
        Commit,
        PlanFolderExport,
        PlanFolderImport,
        PlanMerge,
        Resolve,
    )

    return Graph(
        nodes=(
            Analyze,
            Resolve,
            PlanMerge,
            PlanFolderImport,
            PlanFolderExport,
            Commit,
        ),
        state_type=State,
    )
