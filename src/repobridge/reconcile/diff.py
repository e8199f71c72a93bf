"""Two-way tree reconciliation."""

from __future__ import annotations

from collections import Counter

from repobridge.host.models import EntryKind, TreeEntry
from repobridge.reconcile.models import ChangeStatus, FileChange


def _blobs_by_path(tree: list[TreeEntry]) -> dict[str, TreeEntry]:
    blobs: dict[str, TreeEntry] = {}
    for entry in tree:
        if entry.kind is EntryKind.BLOB:
            blobs.setdefault(entry.path, entry)
    return blobs


def diff(
    source_tree: list[TreeEntry], target_tree: list[TreeEntry]
) -> list[FileChange]:
    """Classify every path that differs between source and target.

    - in both, hashes differ: CONFLICT
    - only in source: ADDED
    - only in target: DELETED (kept in the merge output; nothing
      is ever deleted from the target)
    - in both, hashes equal: omitted

    Without a common ancestor a file changed on one side cannot be
    told apart from a file changed on both, so every differing path
    is a CONFLICT and MODIFIED is never produced.

    Result is sorted by (status order, path).
    """
    source = _blobs_by_path(source_tree)
    target = _blobs_by_path(target_tree)

    changes = []
    for path, entry in source.items():
        other = target.get(path)
        if other is None:
            changes.append(FileChange(path=path, status=ChangeStatus.ADDED))
        elif other.content_hash != entry.content_hash:
            changes.append(FileChange(path=path, status=ChangeStatus.CONFLICT))

    for path in target:
        if path not in source:
            changes.append(FileChange(path=path, status=ChangeStatus.DELETED))

    changes.sort(key=FileChange.sort_key)
    return changes


def summarize(changes: list[FileChange]) -> dict[ChangeStatus, int]:
    """Count changes per status; every status is present."""
    counts = Counter(change.status for change in changes)
    return {status: counts.get(status, 0) for status in ChangeStatus}
