"""Tests for YAML include: directive and --include arguments."""

import sys

import pytest

from repobridge.core.config import State
from repobridge.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    cli_includes,
    deep_merge,
)


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["prog"]
    yield
    sys.argv = original


@pytest.fixture
def write_yaml(tmp_path):
    def write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path
    return write


def test_deep_merge_override_wins():
    base = {"config": {"merge": {"concurrency": 8, "folder_prefix": "a"}}}
    override = {"config": {"merge": {"concurrency": 2}}}

    assert deep_merge(base, override) == {
        "config": {"merge": {"concurrency": 2, "folder_prefix": "a"}}
    }
    assert base["config"]["merge"]["concurrency"] == 8


def test_cli_includes_both_forms():
    argv = ["prog", "--include", "a.yaml", "merge", "--include=b.yaml"]
    assert cli_includes(argv) == ["a.yaml", "b.yaml"]


def test_cli_includes_ignores_dangling_flag():
    assert cli_includes(["prog", "--include"]) == []


def test_single_file_loads(write_yaml, mock_argv):
    path = write_yaml("base.yaml", "config:\n  merge:\n    concurrency: 3\n")

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(path))()

    assert data["config"]["merge"]["concurrency"] == 3


def test_include_is_base_for_including_file(write_yaml, mock_argv):
    write_yaml(
        "shared/github.yaml",
        "config:\n"
        "  github:\n"
        "    api_url: https://ghe.example.com/api/v3\n"
        "  merge:\n"
        "    concurrency: 16\n",
    )
    path = write_yaml(
        "main.yaml",
        "include: shared/github.yaml\n"
        "config:\n"
        "  merge:\n"
        "    concurrency: 4\n",
    )

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(path))()

    assert data["config"]["github"]["api_url"] == "https://ghe.example.com/api/v3"
    assert data["config"]["merge"]["concurrency"] == 4
    assert "include" not in data


def test_nested_includes(write_yaml, mock_argv):
    write_yaml("c.yaml", "config:\n  merge:\n    folder_prefix: from-c\n")
    write_yaml("b.yaml", "include: [c.yaml]\nconfig:\n  log-level: debug\n")
    path = write_yaml("a.yaml", "include: b.yaml\n")

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(path))()

    assert data["config"]["merge"]["folder_prefix"] == "from-c"
    assert data["config"]["log-level"] == "debug"


def test_circular_include_rejected(write_yaml, mock_argv):
    path = write_yaml("a.yaml", "include: b.yaml\n")
    write_yaml("b.yaml", "include: a.yaml\n")

    with pytest.raises(ValueError, match="Circular include"):
        YamlWithIncludesSettingsSource(State, yaml_file=str(path))


def test_cli_include_replaces_default_file(write_yaml, mock_argv):
    write_yaml("base.yaml", "config:\n  merge:\n    concurrency: 3\n")
    override = write_yaml(
        "override.yaml", "config:\n  merge:\n    commit_message: Sync\n"
    )
    sys.argv = ["prog", "--include", str(override)]

    data = YamlWithIncludesSettingsSource(State)()

    assert data["config"]["merge"]["commit_message"] == "Sync"


def test_multiple_cli_includes_later_wins(write_yaml, mock_argv):
    first = write_yaml("one.yaml", "config:\n  merge:\n    concurrency: 1\n")
    second = write_yaml("two.yaml", "config:\n  merge:\n    concurrency: 2\n")
    sys.argv = ["prog", "--include", str(first), f"--include={second}"]

    data = YamlWithIncludesSettingsSource(State)()

    assert data["config"]["merge"]["concurrency"] == 2
