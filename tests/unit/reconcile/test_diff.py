"""Tests for the two-way tree diff."""

from repobridge.host.models import EntryKind, TreeEntry
from repobridge.reconcile.diff import diff, summarize
from repobridge.reconcile.models import ChangeStatus


def blob(path, sha):
    return TreeEntry(path=path, kind=EntryKind.BLOB, content_hash=sha)


def tree(path):
    return TreeEntry(path=path, kind=EntryKind.TREE, content_hash="t-" + path)


def statuses(changes):
    return [(c.path, c.status) for c in changes]


class TestDiff:
    def test_classifies_added_conflict_and_deleted(self):
        source = [blob("a.md", "1"), blob("b.ts", "2"), blob("c.ts", "3")]
        target = [blob("a.md", "1"), blob("b.ts", "9"), blob("d.ts", "4")]

        changes = diff(source, target)

        assert statuses(changes) == [
            ("b.ts", ChangeStatus.CONFLICT),
            ("c.ts", ChangeStatus.ADDED),
            ("d.ts", ChangeStatus.DELETED),
        ]

    def test_empty_target_adds_every_source_file(self):
        source = [blob("README.md", "r"), blob("src/main.ts", "m")]

        changes = diff(source, [])

        assert statuses(changes) == [
            ("README.md", ChangeStatus.ADDED),
            ("src/main.ts", ChangeStatus.ADDED),
        ]
        assert all(not c.resolved for c in changes)

    def test_identical_trees_have_no_changes(self):
        entries = [blob("a", "1"), blob("b", "2")]
        assert diff(entries, list(entries)) == []

    def test_swapping_sides_swaps_added_and_deleted(self):
        left = [blob("same", "1"), blob("both", "x"), blob("left-only", "2")]
        right = [blob("same", "1"), blob("both", "y"), blob("right-only", "3")]

        forward = {c.path: c.status for c in diff(left, right)}
        backward = {c.path: c.status for c in diff(right, left)}

        assert forward["left-only"] is ChangeStatus.ADDED
        assert backward["left-only"] is ChangeStatus.DELETED
        assert forward["right-only"] is ChangeStatus.DELETED
        assert backward["right-only"] is ChangeStatus.ADDED
        assert forward["both"] is backward["both"] is ChangeStatus.CONFLICT

    def test_every_differing_path_reported_once(self):
        source = [blob(f"s{i}", str(i)) for i in range(5)] + [blob("x", "1")]
        target = [blob(f"t{i}", str(i)) for i in range(3)] + [blob("x", "2")]

        changes = diff(source, target)
        paths = [c.path for c in changes]

        assert len(paths) == len(set(paths))
        assert set(paths) == {f"s{i}" for i in range(5)} | {
            f"t{i}" for i in range(3)
        } | {"x"}

    def test_sorted_by_status_then_path(self):
        source = [blob("z", "1"), blob("b", "1"), blob("m", "1")]
        target = [blob("m", "2"), blob("a", "1"), blob("y", "1")]

        changes = diff(source, target)

        assert statuses(changes) == [
            ("m", ChangeStatus.CONFLICT),
            ("b", ChangeStatus.ADDED),
            ("z", ChangeStatus.ADDED),
            ("a", ChangeStatus.DELETED),
            ("y", ChangeStatus.DELETED),
        ]

    def test_directories_are_ignored(self):
        source = [tree("src"), blob("src/a.ts", "1")]
        target = [tree("docs")]

        assert statuses(diff(source, target)) == [
            ("src/a.ts", ChangeStatus.ADDED),
        ]

    def test_never_produces_modified(self):
        source = [blob("a", "1"), blob("b", "2")]
        target = [blob("a", "3"), blob("c", "4")]

        assert ChangeStatus.MODIFIED not in {c.status for c in diff(source, target)}

    def test_first_entry_wins_for_repeated_paths(self):
        source = [blob("a", "1"), blob("a", "2")]
        target = [blob("a", "1")]

        assert diff(source, target) == []


class TestSummarize:
    def test_counts_every_status(self):
        changes = diff(
            [blob("a", "1"), blob("b", "1")],
            [blob("a", "2"), blob("c", "1")],
        )

        assert summarize(changes) == {
            ChangeStatus.ADDED: 1,
            ChangeStatus.MODIFIED: 0,
            ChangeStatus.DELETED: 1,
            ChangeStatus.CONFLICT: 1,
        }

    def test_empty_change_list(self):
        assert set(summarize([]).values()) == {0}
