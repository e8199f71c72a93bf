"""Workflow nodes for graph state machine."""

from repobridge.workflow.nodes.analyze import Analyze
from repobridge.workflow.nodes.commit import Commit
from repobridge.workflow.nodes.plan_folder import PlanFolderExport, PlanFolderImport
from repobridge.workflow.nodes.plan_merge import PlanMerge
from repobridge.workflow.nodes.resolve import Resolve

__all__ = [
    "Analyze",
    "Resolve",
    "PlanMerge",
    "PlanFolderImport",
    "PlanFolderExport",
    "Commit",
]
