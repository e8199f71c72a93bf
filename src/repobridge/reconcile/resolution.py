"""Conflict resolution overlay on a change list."""

from __future__ import annotations

from typing import assert_never

from repobridge.core.log import logger
from repobridge.reconcile.fanout import gather_bounded
from repobridge.reconcile.models import ChangeStatus, ContentFetcher, FileChange


def _needs_source(status: ChangeStatus) -> bool:
    match status:
        case ChangeStatus.ADDED | ChangeStatus.MODIFIED | ChangeStatus.CONFLICT:
            return True
        case ChangeStatus.DELETED:
            return False
        case _:
            assert_never(status)


def _needs_target(status: ChangeStatus) -> bool:
    match status:
        case ChangeStatus.DELETED | ChangeStatus.MODIFIED | ChangeStatus.CONFLICT:
            return True
        case ChangeStatus.ADDED:
            return False
        case _:
            assert_never(status)


class ResolutionState:
    """Records how each conflicting path should be resolved.

    Entries of the wrapped list are mutated in place, so the caller
    and the planner see the same resolutions.
    """

    def __init__(self, changes: list[FileChange]):
        self.changes = changes

    def find(self, path: str) -> FileChange | None:
        for change in self.changes:
            if change.path == path:
                return change
        return None

    def resolve_one(self, path: str, content: str) -> bool:
        """Resolve one path with custom content.

        Returns:
            False when the path is not in the change list (the
            caller may hold a stale list); nothing is changed then
        """
        change = self.find(path)
        if change is None:
            logger.debug("Ignoring resolution for unknown path", path=path)
            return False
        change.resolved = True
        change.resolved_content = content
        return True

    def resolve_all(self, prefer_source: bool) -> int:
        """Resolve every conflict to one side, replacing earlier choices.

        A side whose content was never loaded resolves to "".

        Returns:
            Number of conflicts resolved
        """
        count = 0
        for change in self.changes:
            if change.status is not ChangeStatus.CONFLICT:
                continue
            side = change.source_content if prefer_source else change.target_content
            change.resolved = True
            change.resolved_content = side or ""
            count += 1
        logger.info(
            "Resolved all conflicts",
            side="source" if prefer_source else "target",
            count=count,
        )
        return count

    def unresolved_conflicts(self) -> list[FileChange]:
        return [
            c for c in self.changes
            if c.status is ChangeStatus.CONFLICT and not c.resolved
        ]

    def count_unresolved_conflicts(self) -> int:
        return len(self.unresolved_conflicts())

    async def load_contents(
        self,
        fetch_source: ContentFetcher,
        fetch_target: ContentFetcher,
        concurrency: int,
        statuses: tuple[ChangeStatus, ...] = (ChangeStatus.CONFLICT,),
    ) -> None:
        """Fill source_content/target_content for the given statuses.

        Added paths have no target side and deleted paths have no
        source side; those stay None.
        """
        selected = [c for c in self.changes if c.status in statuses]

        async def load(change: FileChange) -> None:
            if _needs_source(change.status):
                change.source_content = await fetch_source(change.path)
            if _needs_target(change.status):
                change.target_content = await fetch_target(change.path)

        with logger.span("Loading file contents", files=len(selected)):
            await gather_bounded(selected, load, concurrency)
