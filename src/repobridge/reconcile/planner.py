"""Turn reconciliation results into the files to commit."""

from __future__ import annotations

from typing import assert_never

from repobridge.core.log import logger
from repobridge.host.models import EntryKind, TreeEntry
from repobridge.reconcile.fanout import gather_bounded
from repobridge.reconcile.models import (
    ChangeStatus,
    ContentFetcher,
    FileChange,
    FolderMapping,
    PendingFile,
)


def _select_per_path(changes: list[FileChange]) -> list[FileChange]:
    """Keep one change per path, preferring a resolved one.

    Order follows the first occurrence of each path.
    """
    chosen: dict[str, FileChange] = {}
    for change in changes:
        current = chosen.get(change.path)
        if current is None or (change.resolved and not current.resolved):
            chosen[change.path] = change
    return list(chosen.values())


async def build_file_list(
    changes: list[FileChange],
    fetch_source: ContentFetcher,
    fetch_target: ContentFetcher,
    concurrency: int = 8,
) -> list[PendingFile]:
    """Decide the content of every changed path for a standard merge.

    - resolved (any status): resolved_content, nothing fetched
    - DELETED: target content, so target-only files survive
    - ADDED, MODIFIED, unresolved CONFLICT: source content
    - empty or missing content: dropped

    Output holds at most one entry per path, in change list order.
    """

    async def decide(change: FileChange) -> PendingFile | None:
        if change.resolved and change.resolved_content is not None:
            content = change.resolved_content
        else:
            match change.status:
                case ChangeStatus.DELETED:
                    content = await fetch_target(change.path)
                case ChangeStatus.ADDED | ChangeStatus.MODIFIED | ChangeStatus.CONFLICT:
                    content = await fetch_source(change.path)
                case _:
                    assert_never(change.status)
        if not content:
            logger.debug("Dropping path without content", path=change.path)
            return None
        return PendingFile(path=change.path, content=content)

    selected = _select_per_path(changes)
    with logger.span("Hydrating merge files", files=len(selected)):
        decided = await gather_bounded(selected, decide, concurrency)
    return [f for f in decided if f is not None]


def normalize_prefix(prefix: str) -> str:
    """Trim slashes from a folder prefix.

    Raises:
        ValueError: If nothing but slashes was given
    """
    trimmed = prefix.strip().strip("/")
    if not trimmed:
        raise ValueError("Folder prefix must name a folder")
    return trimmed


def build_folder_import(
    source_tree: list[TreeEntry], prefix: str
) -> list[FolderMapping]:
    """Place every source blob under prefix in the target."""
    prefix = normalize_prefix(prefix)
    return [
        FolderMapping(path=f"{prefix}/{entry.path}", source_path=entry.path)
        for entry in source_tree
        if entry.kind is EntryKind.BLOB
    ]


def strip_folder_export(
    target_tree: list[TreeEntry], prefix: str
) -> list[FolderMapping]:
    """Map every target blob under prefix back to its source path."""
    folder = normalize_prefix(prefix) + "/"
    return [
        FolderMapping(path=entry.path[len(folder):], source_path=entry.path)
        for entry in target_tree
        if entry.kind is EntryKind.BLOB and entry.path.startswith(folder)
    ]


async def hydrate_folder(
    mappings: list[FolderMapping],
    fetch: ContentFetcher,
    concurrency: int = 8,
) -> list[PendingFile]:
    """Read each mapping's source_path and emit it at its path.

    Paths whose content is empty or missing are dropped.
    """

    async def read(mapping: FolderMapping) -> PendingFile | None:
        content = await fetch(mapping.source_path)
        if not content:
            logger.debug("Dropping path without content", path=mapping.source_path)
            return None
        return PendingFile(path=mapping.path, content=content)

    with logger.span("Hydrating folder files", files=len(mappings)):
        read_files = await gather_bounded(mappings, read, concurrency)
    return [f for f in read_files if f is not None]
